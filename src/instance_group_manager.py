"""
Lifecycle operations for Compute Engine zonal managed instance groups.
"""

import json
import logging
import time
from dataclasses import replace
from typing import Dict, Optional, Tuple

from clients import ComputeRestClient
from config import ProviderConfig
from errors import (
    ApiError,
    InvalidIdentifierError,
    NotFoundError,
    NotShrinkingError,
    OperationError,
    OperationTimeoutError,
    ValidationError,
)
from expanders import (
    expand_auto_healing_policies,
    expand_fixed_or_percent,
    expand_instance_group_manager,
    expand_named_ports,
    expand_target_pools,
    expand_update_policy,
    expand_versions,
    flatten_auto_healing_policies,
    flatten_fixed_or_percent,
    flatten_named_ports,
    flatten_update_policy,
    flatten_versions,
)
from models import InstanceGroupManager
from operations import wait_for_zone_operation
from resource_id import InstanceGroupManagerId
from self_links import (
    convert_self_link_to_v1,
    get_relative_path,
    get_resource_name_from_self_link,
)

logger = logging.getLogger(__name__)


def _target_pools_changed(current: InstanceGroupManager, desired: InstanceGroupManager) -> bool:
    return {get_relative_path(p) for p in current.target_pools} != {
        get_relative_path(p) for p in desired.target_pools
    }


def _auto_healing_changed(current: InstanceGroupManager, desired: InstanceGroupManager) -> bool:
    def key(igm):
        return [
            (get_relative_path(p.health_check), p.initial_delay_sec)
            for p in igm.auto_healing_policies
        ]

    return key(current) != key(desired)


def _versions_changed(current: InstanceGroupManager, desired: InstanceGroupManager) -> bool:
    def key(igm):
        # compare the dominant fixed/percent member, as read back from the API
        return [
            (
                v.name,
                get_relative_path(v.instance_template),
                flatten_fixed_or_percent(expand_fixed_or_percent(v.target_size)),
            )
            for v in igm.versions
        ]

    return key(current) != key(desired)


def _update_policy_changed(current: InstanceGroupManager, desired: InstanceGroupManager) -> bool:
    # update_policy is optional and computed; leaving it out keeps the server value
    if desired.update_policy is None:
        return False
    current_policy = expand_update_policy(current.update_policy)
    # unset surge/unavailable members are absent from the desired body
    return any(
        current_policy.get(key) != value
        for key, value in expand_update_policy(desired.update_policy).items()
    )


def _check_recreate_only_fields(
    igm_id: InstanceGroupManagerId,
    current: InstanceGroupManager,
    desired: InstanceGroupManager,
) -> None:
    """Raise if a field that can only be set at creation time differs."""
    changed = []
    if desired.name != igm_id.name:
        changed.append("name")
    if desired.project and desired.project != igm_id.project:
        changed.append("project")
    if desired.zone and get_resource_name_from_self_link(desired.zone) != igm_id.zone:
        changed.append("zone")
    if desired.description != current.description:
        changed.append("description")
    if desired.base_instance_name != current.base_instance_name:
        changed.append("base_instance_name")
    if changed:
        raise ValidationError(
            f"Cannot update {', '.join(changed)} of InstanceGroupManager "
            f"{igm_id.encode()}: the group must be recreated"
        )


class InstanceGroupManagerResource:
    """Create, read, update, delete and import managed instance groups."""

    def __init__(self, client: ComputeRestClient, config: ProviderConfig):
        """
        Initialize the resource adapter.

        Args:
            client: Compute REST client used for every API call
            config: Provider configuration with ambient project/region/zone
                and operation timeouts
        """
        self.client = client
        self.config = config

    def _wait(self, op: Dict, project: str, activity: str, timeout: int) -> Dict:
        return wait_for_zone_operation(
            self.client,
            op,
            project,
            activity,
            timeout=timeout,
            poll_interval=self.config.poll_interval,
        )

    def create(self, igm: InstanceGroupManager) -> InstanceGroupManager:
        """
        Create the managed instance group and read it back.

        ``igm.id`` is set as soon as the insert request is accepted, so the
        resource stays tracked even if waiting for the operation fails.

        Raises:
            ValidationError: If the configuration is invalid
            ApiError: If the insert request is rejected
            OperationError: If the insert operation fails or times out
        """
        igm.validate()
        project = self.config.get_project(igm.project)
        zone = self.config.get_zone(igm.zone)

        manager = expand_instance_group_manager(igm)
        logger.debug(f"InstanceGroupManager insert request: {json.dumps(manager)}")
        op = self.client.insert_instance_group_manager(project, zone, manager)

        igm.project = project
        igm.zone = zone
        igm.id = InstanceGroupManagerId(project, zone, igm.name).encode()
        logger.info(f"Creating InstanceGroupManager {igm.id} (op={op.get('name')})")

        self._wait(
            op, project, "Creating InstanceGroupManager", self.config.create_timeout
        )
        return self.read(igm)

    def _get_manager(
        self, igm: InstanceGroupManager
    ) -> Optional[Tuple[InstanceGroupManagerId, Dict]]:
        """Fetch the remote group; None if it does not exist."""
        igm_id = InstanceGroupManagerId.decode(igm.id).resolve(
            self.config, project=igm.project, zone=igm.zone
        )

        if not igm_id.zone:
            # Imported by name only: search every zone of the provider region.
            return self._find_in_region(igm_id)

        try:
            manager = self.client.get_instance_group_manager(
                igm_id.project, igm_id.zone, igm_id.name
            )
        except NotFoundError:
            return None
        return igm_id, manager

    def _find_in_region(
        self, igm_id: InstanceGroupManagerId
    ) -> Optional[Tuple[InstanceGroupManagerId, Dict]]:
        region = self.config.get_region()
        region_data = self.client.get_region(igm_id.project, region)
        for zone_link in region_data.get("zones", []):
            zone = get_resource_name_from_self_link(zone_link)
            try:
                manager = self.client.get_instance_group_manager(
                    igm_id.project, zone, igm_id.name
                )
            except NotFoundError:
                logger.debug(f"Instance Group Manager {igm_id.name!r} not in {zone}")
                continue
            logger.info(f"Found Instance Group Manager {igm_id.name!r} in {zone}")
            return replace(igm_id, zone=zone), manager
        return None

    def read(self, igm: InstanceGroupManager) -> InstanceGroupManager:
        """
        Refresh ``igm`` from the remote group.

        A group that no longer exists is not an error: ``igm.id`` is cleared
        and the object is returned.

        Raises:
            InvalidIdentifierError: If ``igm.id`` cannot be parsed
            ApiError: If the API call fails for a reason other than NotFound
            OperationTimeoutError: If ``wait_for_instances`` is set and the
                instances are not created within the create timeout
        """
        found = self._get_manager(igm)
        if found is None:
            logger.warning(
                f"Instance Group Manager {igm.id!r} not found, removing from state."
            )
            igm.id = ""
            return igm

        igm_id, manager = found
        igm.id = igm_id.encode()
        igm.project = igm_id.project
        igm.name = manager.get("name", igm_id.name)
        igm.zone = get_resource_name_from_self_link(manager.get("zone", igm_id.zone))
        igm.base_instance_name = manager.get("baseInstanceName", "")
        igm.description = manager.get("description", "")
        igm.target_size = int(manager.get("targetSize", 0))
        igm.target_pools = set(manager.get("targetPools", []))
        igm.named_ports = flatten_named_ports(manager.get("namedPorts"))
        igm.fingerprint = manager.get("fingerprint", "")
        igm.instance_group = convert_self_link_to_v1(manager.get("instanceGroup", ""))
        igm.self_link = convert_self_link_to_v1(manager.get("selfLink", ""))
        igm.auto_healing_policies = flatten_auto_healing_policies(
            manager.get("autoHealingPolicies")
        )
        igm.versions = flatten_versions(manager.get("versions"))
        igm.update_policy = flatten_update_policy(manager.get("updatePolicy"))

        if igm.wait_for_instances:
            self._wait_for_instances(igm)

        return igm

    def _wait_for_instances(self, igm: InstanceGroupManager) -> None:
        """Poll until every target instance has no pending action."""
        start = time.time()
        timeout = self.config.create_timeout
        while True:
            try:
                found = self._get_manager(igm)
            except ApiError as e:
                if not e.retryable:
                    raise
                logger.warning(
                    f"Error in fetching manager while waiting for instances to come up: {e}"
                )
            else:
                if found is None:
                    raise OperationError(
                        f"Instance Group Manager {igm.id!r} disappeared while waiting for instances"
                    )
                _, manager = found
                done = int(manager.get("currentActions", {}).get("none", 0))
                target = int(manager.get("targetSize", 0))
                if done >= target:
                    logger.info(
                        f"Instance Group Manager {igm.id}: {done}/{target} instances created"
                    )
                    return
                logger.info(
                    f"Waiting for instances of {igm.id}: {done}/{target} created"
                )

            elapsed = time.time() - start
            if elapsed > timeout:
                raise OperationTimeoutError(
                    f"timeout while waiting for instances of {igm.id} after {elapsed:.0f}s"
                )
            time.sleep(self.config.poll_interval)

    def update(
        self, current: InstanceGroupManager, desired: InstanceGroupManager
    ) -> InstanceGroupManager:
        """
        Apply the difference between ``current`` and ``desired``.

        Fields the PATCH method supports are sent in one partial request
        together with the stored fingerprint. Named ports and target size go
        through their own calls. Each operation is awaited before the next
        starts; the first failure aborts the update.

        Returns:
            ``desired``, refreshed from the remote group

        Raises:
            ValidationError: If the configuration is invalid, or if name,
                project, zone, description or base_instance_name differ
                from the current group
        """
        desired.validate()
        igm_id = InstanceGroupManagerId.decode(current.id).resolve(
            self.config, project=current.project, zone=current.zone
        )
        igm_id = replace(igm_id, zone=self.config.get_zone(igm_id.zone))
        _check_recreate_only_fields(igm_id, current, desired)

        project = igm_id.project
        zone = igm_id.zone
        name = igm_id.name
        timeout = self.config.update_timeout

        updated_manager: Dict = {"fingerprint": current.fingerprint}
        change = False

        if _target_pools_changed(current, desired):
            updated_manager["targetPools"] = expand_target_pools(desired.target_pools)
            change = True

        if _auto_healing_changed(current, desired):
            # sent even when empty so that removing the policy clears it
            updated_manager["autoHealingPolicies"] = expand_auto_healing_policies(
                desired.auto_healing_policies
            )
            change = True

        if _versions_changed(current, desired):
            updated_manager["versions"] = expand_versions(desired.versions)
            change = True

        if _update_policy_changed(current, desired):
            updated_manager["updatePolicy"] = expand_update_policy(desired.update_policy)
            change = True

        if change:
            logger.debug(
                f"InstanceGroupManager patch request: {json.dumps(updated_manager)}"
            )
            op = self.client.patch_instance_group_manager(
                project, zone, name, updated_manager
            )
            self._wait(op, project, "Updating managed group instances", timeout)

        # named ports can't be updated through PATCH
        if current.named_ports != desired.named_ports:
            named_ports = expand_named_ports(desired.named_ports)
            logger.debug(f"Setting named ports of {name}: {named_ports}")
            op = self.client.set_named_ports(project, zone, name, named_ports)
            self._wait(op, project, "Updating InstanceGroupManager", timeout)

        if current.target_size != desired.target_size:
            logger.info(
                f"Resizing {name} from {current.target_size} to {desired.target_size}"
            )
            op = self.client.resize_instance_group_manager(
                project, zone, name, desired.target_size
            )
            self._wait(op, project, "Updating InstanceGroupManager", timeout)

        desired.id = InstanceGroupManagerId(project, zone, name).encode()
        desired.fingerprint = current.fingerprint
        return self.read(desired)

    def _delete_with_retry(self, igm_id: InstanceGroupManagerId) -> Optional[Dict]:
        attempt = 0
        while True:
            try:
                return self.client.delete_instance_group_manager(
                    igm_id.project, igm_id.zone, igm_id.name
                )
            except NotFoundError:
                return None
            except ApiError as e:
                if not e.retryable or attempt >= self.config.delete_retries:
                    raise
                attempt += 1
                logger.warning(
                    f"Delete of {igm_id.encode()} failed ({e}), retry {attempt}/{self.config.delete_retries} in {self.config.delete_retry_delay}s"
                )
                time.sleep(self.config.delete_retry_delay)

    def delete(self, igm: InstanceGroupManager) -> None:
        """
        Delete the managed instance group.

        Retryable API failures of the delete request are retried with a
        fixed delay. If waiting for the operation times out while the group
        is still draining instances, waiting resumes with the observed size
        as the new baseline.

        Raises:
            ApiError: If the delete request fails permanently
            NotShrinkingError: If the group size stops decreasing
            OperationError: If the delete operation fails
        """
        igm_id = InstanceGroupManagerId.decode(igm.id).resolve(
            self.config, project=igm.project, zone=igm.zone
        )
        igm_id = replace(igm_id, zone=self.config.get_zone(igm_id.zone))

        op = self._delete_with_retry(igm_id)
        if op is None:
            logger.warning(f"Instance Group Manager {igm_id.encode()} already gone")
            igm.id = ""
            return

        current_size = igm.target_size
        activity = "Deleting InstanceGroupManager"
        while True:
            try:
                self._wait(op, igm_id.project, activity, self.config.delete_timeout)
                break
            except OperationTimeoutError:
                if current_size <= 0:
                    logger.warning(
                        f"{activity}: timed out with no instances left, treating as deleted"
                    )
                    break

                instance_group = self.client.get_instance_group(
                    igm_id.project, igm_id.zone, igm_id.name
                )
                instance_group_size = int(instance_group.get("size", 0))
                if instance_group_size >= current_size:
                    raise NotShrinkingError(
                        "Error, instance group isn't shrinking during delete "
                        f"({instance_group_size} >= {current_size})"
                    )

                logger.info(
                    f"timeout occurred, but instance group is shrinking ({instance_group_size} < {current_size})"
                )
                current_size = instance_group_size

        logger.info(f"Deleted InstanceGroupManager {igm_id.encode()}")
        igm.id = ""

    def import_state(self, import_id: str) -> InstanceGroupManager:
        """
        Seed a configuration from an import identifier.

        Args:
            import_id: ``{projectId}/{zone}/{name}``

        Raises:
            InvalidIdentifierError: If project or zone is missing
        """
        igm_id = InstanceGroupManagerId.decode(import_id)
        if not igm_id.zone or not igm_id.project:
            raise InvalidIdentifierError(
                "Invalid instance group manager import ID. "
                "Expecting {projectId}/{zone}/{name}."
            )
        return InstanceGroupManager(
            name=igm_id.name,
            project=igm_id.project,
            zone=igm_id.zone,
            wait_for_instances=False,
            id=igm_id.encode(),
        )
