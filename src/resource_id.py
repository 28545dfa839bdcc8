"""
Identifier codec for managed instance groups.

State and import identifiers take the form ``{project}/{zone}/{name}``.
A bare ``{name}`` is also accepted, in which case project and zone are
derived from the provider configuration.
"""

import re
from dataclasses import dataclass, replace

from config import ProviderConfig
from errors import InvalidIdentifierError

PROJECT_REGEX = (
    r"(?:(?:[-a-z0-9]{1,63}\.)*(?:[a-z](?:[-a-z0-9]{0,61}[a-z0-9])?):)?"
    r"(?:[0-9]{1,19}|(?:[a-z0-9](?:[-a-z0-9]{0,61}[a-z0-9])?))"
)

ID_REGEX = re.compile(r"^" + PROJECT_REGEX + r"/[a-z0-9-]+/[a-z0-9-]+$")
ID_NAME_REGEX = re.compile(r"^[a-z0-9-]+$")


@dataclass(frozen=True)
class InstanceGroupManagerId:
    """Composite key of a zonal managed instance group."""

    project: str
    zone: str
    name: str

    def encode(self) -> str:
        """Return the ``project/zone/name`` form of this identifier."""
        return f"{self.project}/{self.zone}/{self.name}"

    @classmethod
    def decode(cls, value: str) -> "InstanceGroupManagerId":
        """
        Parse an identifier string.

        Args:
            value: ``project/zone/name`` or a bare ``name``

        Returns:
            InstanceGroupManagerId; project and zone are empty for a bare name

        Raises:
            InvalidIdentifierError: If the string matches neither form
        """
        if ID_REGEX.match(value):
            project, zone, name = value.split("/")
            return cls(project=project, zone=zone, name=name)
        if ID_NAME_REGEX.match(value):
            return cls(project="", zone="", name=value)
        raise InvalidIdentifierError(
            "Invalid instance group manager specifier. Expecting either "
            "{projectId}/{zone}/{name} or {name}, where {projectId} and {zone} "
            f"will be derived from the provider. Got: {value!r}"
        )

    def resolve(
        self, config: ProviderConfig, project: str = "", zone: str = ""
    ) -> "InstanceGroupManagerId":
        """
        Fill an empty project or zone from the given overrides or provider config.

        The zone stays empty when neither source knows it.
        """
        resolved_project = self.project or config.get_project(project)
        resolved_zone = self.zone or zone or config.zone
        return replace(self, project=resolved_project, zone=resolved_zone)
