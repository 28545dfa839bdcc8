"""
Data models for the managed instance group adapter.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from errors import ValidationError

NAME_REGEX = re.compile(r"^[a-z0-9-]+$")

MINIMAL_ACTIONS = ("RESTART", "REPLACE")
UPDATE_POLICY_TYPES = ("OPPORTUNISTIC", "PROACTIVE")


def _check_range(label: str, value: Optional[int], low: int, high: int) -> None:
    if value is not None and not low <= value <= high:
        raise ValidationError(
            f"expected {label} to be in the range ({low} - {high}), got {value}"
        )


@dataclass
class FixedOrPercent:
    """A quantity given either as an absolute count or a percentage."""

    fixed: Optional[int] = None
    percent: Optional[int] = None

    def validate(self, label: str) -> None:
        _check_range(f"{label}.percent", self.percent, 0, 100)
        if self.fixed is not None and self.fixed < 0:
            raise ValidationError(f"{label}.fixed must not be negative")

    def to_dict(self) -> Dict[str, int]:
        data = {}
        if self.fixed is not None:
            data["fixed"] = self.fixed
        if self.percent is not None:
            data["percent"] = self.percent
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["FixedOrPercent"]:
        if not data:
            return None
        return cls(fixed=data.get("fixed"), percent=data.get("percent"))


@dataclass(frozen=True)
class NamedPort:
    """Named port exposed by every instance of the group."""

    name: str
    port: int


@dataclass
class AutoHealingPolicy:
    """Health check used to recreate unhealthy instances."""

    health_check: str
    initial_delay_sec: int


@dataclass
class Version:
    """An instance template and the share of the group it should run on."""

    name: str
    instance_template: str
    target_size: Optional[FixedOrPercent] = None


@dataclass
class UpdatePolicy:
    """Rolling update policy of the group."""

    minimal_action: str
    type: str
    max_surge: FixedOrPercent = field(default_factory=FixedOrPercent)
    max_unavailable: FixedOrPercent = field(default_factory=FixedOrPercent)
    min_ready_sec: Optional[int] = None

    def validate(self) -> None:
        if self.minimal_action not in MINIMAL_ACTIONS:
            raise ValidationError(
                f"expected update_policy.minimal_action to be one of "
                f"{list(MINIMAL_ACTIONS)}, got {self.minimal_action}"
            )
        if self.type not in UPDATE_POLICY_TYPES:
            raise ValidationError(
                f"expected update_policy.type to be one of "
                f"{list(UPDATE_POLICY_TYPES)}, got {self.type}"
            )
        for label, value in (
            ("update_policy.max_surge", self.max_surge),
            ("update_policy.max_unavailable", self.max_unavailable),
        ):
            value.validate(label)
            if value.fixed and value.percent:
                raise ValidationError(f"{label}: fixed conflicts with percent")
        _check_range("update_policy.min_ready_sec", self.min_ready_sec, 0, 3600)


@dataclass
class InstanceGroupManager:
    """
    Configuration and observed state of a zonal managed instance group.

    ``id`` holds the encoded ``project/zone/name`` identifier once the
    resource exists remotely; an empty ``id`` means the resource is absent.
    """

    name: str
    base_instance_name: str = ""
    versions: List[Version] = field(default_factory=list)
    zone: str = ""
    project: str = ""
    description: str = ""
    target_size: int = 0
    named_ports: Set[NamedPort] = field(default_factory=set)
    target_pools: Set[str] = field(default_factory=set)
    auto_healing_policies: List[AutoHealingPolicy] = field(default_factory=list)
    update_policy: Optional[UpdatePolicy] = None
    wait_for_instances: bool = False

    # Computed
    id: str = ""
    fingerprint: str = ""
    instance_group: str = ""
    self_link: str = ""

    def validate(self) -> None:
        """
        Check the configured fields against the resource schema.

        Raises:
            ValidationError: If any field is out of range or malformed
        """
        if not NAME_REGEX.match(self.name or ""):
            raise ValidationError(f"name must match {NAME_REGEX.pattern}: {self.name!r}")
        if not self.base_instance_name:
            raise ValidationError("base_instance_name is required")
        if not self.versions:
            raise ValidationError("at least one version is required")
        if self.target_size < 0:
            raise ValidationError("target_size must not be negative")
        for i, version in enumerate(self.versions):
            if not version.name or not version.instance_template:
                raise ValidationError(
                    f"version.{i}: name and instance_template are required"
                )
            if version.target_size is not None:
                version.target_size.validate(f"version.{i}.target_size")
        if len(self.auto_healing_policies) > 1:
            raise ValidationError("auto_healing_policies: at most 1 item allowed")
        for policy in self.auto_healing_policies:
            _check_range(
                "auto_healing_policies.0.initial_delay_sec",
                policy.initial_delay_sec,
                0,
                3600,
            )
        if self.update_policy is not None:
            self.update_policy.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON document shape used by the CLI and HTTP API."""
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "base_instance_name": self.base_instance_name,
            "zone": self.zone,
            "project": self.project,
            "description": self.description,
            "target_size": self.target_size,
            "named_port": [
                {"name": p.name, "port": p.port}
                for p in sorted(self.named_ports, key=lambda p: (p.name, p.port))
            ],
            "target_pools": sorted(self.target_pools),
            "auto_healing_policies": [
                {
                    "health_check": p.health_check,
                    "initial_delay_sec": p.initial_delay_sec,
                }
                for p in self.auto_healing_policies
            ],
            "version": [
                {
                    "name": v.name,
                    "instance_template": v.instance_template,
                    "target_size": (
                        [v.target_size.to_dict()] if v.target_size is not None else []
                    ),
                }
                for v in self.versions
            ],
            "update_policy": [],
            "wait_for_instances": self.wait_for_instances,
            "fingerprint": self.fingerprint,
            "instance_group": self.instance_group,
            "self_link": self.self_link,
        }
        up = self.update_policy
        if up is not None:
            data["update_policy"] = [
                {
                    "minimal_action": up.minimal_action,
                    "type": up.type,
                    "max_surge_fixed": up.max_surge.fixed,
                    "max_surge_percent": up.max_surge.percent,
                    "max_unavailable_fixed": up.max_unavailable.fixed,
                    "max_unavailable_percent": up.max_unavailable.percent,
                    "min_ready_sec": up.min_ready_sec,
                }
            ]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstanceGroupManager":
        """
        Build an InstanceGroupManager from a JSON document.

        Single-item blocks (``target_size``, ``update_policy``) may be given
        either as a one-element list or as a plain object.
        """

        def single(value):
            if isinstance(value, list):
                return value[0] if value else None
            return value

        versions = []
        for raw in data.get("version", []):
            versions.append(
                Version(
                    name=raw["name"],
                    instance_template=raw["instance_template"],
                    target_size=FixedOrPercent.from_dict(single(raw.get("target_size"))),
                )
            )

        update_policy = None
        raw_up = single(data.get("update_policy"))
        if raw_up:
            update_policy = UpdatePolicy(
                minimal_action=raw_up["minimal_action"],
                type=raw_up["type"],
                max_surge=FixedOrPercent(
                    fixed=raw_up.get("max_surge_fixed"),
                    percent=raw_up.get("max_surge_percent"),
                ),
                max_unavailable=FixedOrPercent(
                    fixed=raw_up.get("max_unavailable_fixed"),
                    percent=raw_up.get("max_unavailable_percent"),
                ),
                min_ready_sec=raw_up.get("min_ready_sec"),
            )

        return cls(
            id=data.get("id", ""),
            name=data["name"],
            base_instance_name=data.get("base_instance_name", ""),
            zone=data.get("zone", ""),
            project=data.get("project", ""),
            description=data.get("description", ""),
            target_size=int(data.get("target_size", 0)),
            named_ports={
                NamedPort(name=p["name"], port=int(p["port"]))
                for p in data.get("named_port", [])
            },
            target_pools=set(data.get("target_pools", [])),
            auto_healing_policies=[
                AutoHealingPolicy(
                    health_check=p["health_check"],
                    initial_delay_sec=int(p["initial_delay_sec"]),
                )
                for p in data.get("auto_healing_policies", [])
            ],
            versions=versions,
            update_policy=update_policy,
            wait_for_instances=bool(data.get("wait_for_instances", False)),
            fingerprint=data.get("fingerprint", ""),
            instance_group=data.get("instance_group", ""),
            self_link=data.get("self_link", ""),
        )
