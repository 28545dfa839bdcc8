"""
Provider configuration for the managed instance group adapter.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from errors import ConfigurationError


@dataclass
class ProviderConfig:
    """Ambient settings shared by every lifecycle operation."""

    project_id: str = ""
    region: str = ""
    zone: str = ""
    create_timeout: int = 900
    update_timeout: int = 900
    delete_timeout: int = 900
    poll_interval: int = 5
    delete_retries: int = 20
    delete_retry_delay: float = 2.0
    verbose: bool = False

    @classmethod
    def from_args(cls, args) -> "ProviderConfig":
        """
        Create configuration from command-line arguments.

        Args:
            args: Parsed argparse arguments

        Returns:
            ProviderConfig instance
        """
        return cls(
            project_id=args.project or "",
            region=args.region or "",
            zone=args.zone or "",
            create_timeout=args.timeout,
            update_timeout=args.timeout,
            delete_timeout=args.timeout,
            poll_interval=args.poll_interval,
            verbose=args.verbose,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProviderConfig":
        """
        Create configuration from environment variables.

        Reads GCP_PROJECT_ID, GCP_REGION, GCP_ZONE and, when set,
        OPERATION_TIMEOUT and POLL_INTERVAL.
        """
        env = os.environ if environ is None else environ
        timeout = int(env.get("OPERATION_TIMEOUT", "900"))
        return cls(
            project_id=env.get("GCP_PROJECT_ID", ""),
            region=env.get("GCP_REGION", ""),
            zone=env.get("GCP_ZONE", ""),
            create_timeout=timeout,
            update_timeout=timeout,
            delete_timeout=timeout,
            poll_interval=int(env.get("POLL_INTERVAL", "5")),
        )

    def get_project(self, override: str = "") -> str:
        """Return the override if given, else the provider project."""
        project = override or self.project_id
        if not project:
            raise ConfigurationError("project: required field is not set")
        return project

    def get_zone(self, override: str = "") -> str:
        """Return the override if given, else the provider zone."""
        zone = override or self.zone
        if not zone:
            raise ConfigurationError("zone: required field is not set")
        return zone

    def get_region(self) -> str:
        """Return the provider region, deriving it from the zone if needed."""
        if self.region:
            return self.region
        if self.zone and "-" in self.zone:
            return self.zone.rsplit("-", 1)[0]
        raise ConfigurationError("region: required field is not set")
