"""
Helpers for Compute Engine self links.
"""

import re

_API_VERSION_REGEX = re.compile(r"/compute/(beta|alpha)/")


def convert_self_link_to_v1(link: str) -> str:
    """Rewrite a beta or alpha self link to point at the v1 API."""
    if not link:
        return link
    return _API_VERSION_REGEX.sub("/compute/v1/", link, count=1)


def get_resource_name_from_self_link(link: str) -> str:
    """Return the last path segment of a self link (the resource name)."""
    if not link:
        return link
    return link.rstrip("/").split("/")[-1]


def get_relative_path(link: str) -> str:
    """Return the ``projects/...`` part of a self link, or the link unchanged."""
    if not link:
        return link
    idx = link.find("projects/")
    if idx < 0:
        return link
    return link[idx:]


def compare_self_link_relative_paths(a: str, b: str) -> bool:
    """True if two links refer to the same resource, ignoring host and API version."""
    return get_relative_path(a) == get_relative_path(b)
