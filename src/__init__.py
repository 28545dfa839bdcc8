"""
Compute Engine Managed Instance Group Adapter.
"""

from clients import ComputeRestClient
from config import ProviderConfig
from instance_group_manager import InstanceGroupManagerResource
from log_utils import setup_logging
from models import (
    AutoHealingPolicy,
    FixedOrPercent,
    InstanceGroupManager,
    NamedPort,
    UpdatePolicy,
    Version,
)
from resource_id import InstanceGroupManagerId

__all__ = [
    "ComputeRestClient",
    "ProviderConfig",
    "InstanceGroupManagerResource",
    "setup_logging",
    "AutoHealingPolicy",
    "FixedOrPercent",
    "InstanceGroupManager",
    "NamedPort",
    "UpdatePolicy",
    "Version",
    "InstanceGroupManagerId",
]
