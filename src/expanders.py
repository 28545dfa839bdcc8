"""
Transcoders between the adapter's typed configuration and the Compute
Engine InstanceGroupManager JSON representation.

``expand_*`` functions build request bodies; ``flatten_*`` functions read
response bodies back into configuration objects. None of them perform I/O.
"""

from typing import Any, Dict, Iterable, List, Optional, Set

from models import (
    AutoHealingPolicy,
    FixedOrPercent,
    InstanceGroupManager,
    NamedPort,
    UpdatePolicy,
    Version,
)
from self_links import convert_self_link_to_v1


def expand_named_ports(named_ports: Iterable[NamedPort]) -> List[Dict[str, Any]]:
    return [
        {"name": p.name, "port": p.port}
        for p in sorted(named_ports, key=lambda p: (p.name, p.port))
    ]


def flatten_named_ports(named_ports: Optional[List[Dict[str, Any]]]) -> Set[NamedPort]:
    return {
        NamedPort(name=p.get("name", ""), port=int(p.get("port", 0)))
        for p in named_ports or []
    }


def expand_target_pools(target_pools: Iterable[str]) -> List[str]:
    return sorted(target_pools)


def expand_auto_healing_policies(
    policies: Iterable[AutoHealingPolicy],
) -> List[Dict[str, Any]]:
    return [
        {"healthCheck": p.health_check, "initialDelaySec": p.initial_delay_sec}
        for p in policies
    ]


def flatten_auto_healing_policies(
    policies: Optional[List[Dict[str, Any]]],
) -> List[AutoHealingPolicy]:
    return [
        AutoHealingPolicy(
            health_check=p.get("healthCheck", ""),
            initial_delay_sec=int(p.get("initialDelaySec", 0)),
        )
        for p in policies or []
    ]


def expand_fixed_or_percent(
    value: Optional[FixedOrPercent], clear_other: bool = False
) -> Optional[Dict[str, Any]]:
    """
    Encode a fixed-or-percent value.

    A positive percent takes precedence. Otherwise ``fixed`` is sent
    explicitly, even when it is zero, so that zero is distinguishable from
    unset. With ``clear_other`` the losing member is sent as ``null`` so a
    PATCH removes any previous value.
    """
    if value is None:
        return None
    if value.percent and value.percent > 0:
        data: Dict[str, Any] = {"percent": value.percent}
        if clear_other:
            data["fixed"] = None
        return data
    data = {"fixed": value.fixed or 0}
    if clear_other:
        data["percent"] = None
    return data


def flatten_fixed_or_percent(
    value: Optional[Dict[str, Any]],
) -> Optional[FixedOrPercent]:
    """Return the dominant member of a fixed-or-percent value, or None."""
    if not value:
        return None
    percent = value.get("percent") or 0
    if percent > 0:
        return FixedOrPercent(percent=percent)
    fixed = value.get("fixed") or 0
    if fixed > 0:
        return FixedOrPercent(fixed=fixed)
    return None


def expand_versions(versions: Iterable[Version]) -> List[Dict[str, Any]]:
    result = []
    for version in versions:
        data: Dict[str, Any] = {
            "name": version.name,
            "instanceTemplate": version.instance_template,
        }
        target_size = expand_fixed_or_percent(version.target_size)
        if target_size is not None:
            data["targetSize"] = target_size
        result.append(data)
    return result


def flatten_versions(versions: Optional[List[Dict[str, Any]]]) -> List[Version]:
    return [
        Version(
            name=v.get("name", ""),
            instance_template=convert_self_link_to_v1(v.get("instanceTemplate", "")),
            target_size=flatten_fixed_or_percent(v.get("targetSize")),
        )
        for v in versions or []
    ]


def _is_set(value: Optional[FixedOrPercent]) -> bool:
    return value is not None and (value.fixed is not None or value.percent is not None)


def expand_update_policy(policy: Optional[UpdatePolicy]) -> Dict[str, Any]:
    """
    Encode an update policy.

    ``maxSurge`` and ``maxUnavailable`` are left out when neither member is
    configured, so the server keeps its current values.
    """
    if policy is None:
        return {}
    data: Dict[str, Any] = {
        "minimalAction": policy.minimal_action,
        "type": policy.type,
        "minReadySec": policy.min_ready_sec or 0,
    }
    # percent and fixed conflict; a positive percent wins
    if _is_set(policy.max_surge):
        data["maxSurge"] = expand_fixed_or_percent(policy.max_surge, clear_other=True)
    if _is_set(policy.max_unavailable):
        data["maxUnavailable"] = expand_fixed_or_percent(
            policy.max_unavailable, clear_other=True
        )
    return data


def _flatten_policy_quantity(value: Optional[Dict[str, Any]]) -> FixedOrPercent:
    # Unlike version target sizes, a zero fixed value is kept here.
    value = value or {}
    percent = value.get("percent") or 0
    if percent > 0:
        return FixedOrPercent(percent=percent)
    return FixedOrPercent(fixed=value.get("fixed") or 0)


def flatten_update_policy(policy: Optional[Dict[str, Any]]) -> Optional[UpdatePolicy]:
    if not policy:
        return None
    return UpdatePolicy(
        minimal_action=policy.get("minimalAction", ""),
        type=policy.get("type", ""),
        max_surge=_flatten_policy_quantity(policy.get("maxSurge")),
        max_unavailable=_flatten_policy_quantity(policy.get("maxUnavailable")),
        min_ready_sec=policy.get("minReadySec", 0),
    )


def expand_instance_group_manager(igm: InstanceGroupManager) -> Dict[str, Any]:
    """Build the full insert request body."""
    body: Dict[str, Any] = {
        "name": igm.name,
        "description": igm.description,
        "baseInstanceName": igm.base_instance_name,
        # always sent so that a size of 0 is honoured
        "targetSize": igm.target_size,
        "namedPorts": expand_named_ports(igm.named_ports),
        "targetPools": expand_target_pools(igm.target_pools),
        "autoHealingPolicies": expand_auto_healing_policies(igm.auto_healing_policies),
        "versions": expand_versions(igm.versions),
    }
    update_policy = expand_update_policy(igm.update_policy)
    if update_policy:
        body["updatePolicy"] = update_policy
    return body
