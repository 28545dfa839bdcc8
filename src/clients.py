"""
REST API client for Compute Engine managed instance groups (beta API).
"""

import logging
import time
from typing import Dict, List, Optional

import google.auth
import requests
from google.auth.transport.requests import AuthorizedSession

from errors import ApiError, NotFoundError

logger = logging.getLogger(__name__)

API_BASE = "https://compute.googleapis.com/compute/beta"


class ComputeRestClient:
    """REST client for the Compute Engine beta API."""

    RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

    def __init__(
        self,
        timeout_s: int = 60,
        max_retries: int = 5,
        base_delay: float = 5.0,
        credentials=None,
    ):
        """
        Initialize the Compute REST client.

        Args:
            timeout_s: Request timeout in seconds
            max_retries: Maximum number of retries for transient errors
            base_delay: Base delay for exponential backoff
            credentials: Optional google.auth credentials; application default
                credentials are used when omitted
        """
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.base_delay = base_delay

        if credentials is None:
            credentials, _ = google.auth.default(
                scopes=["https://www.googleapis.com/auth/cloud-platform"]
            )
        self.session = AuthorizedSession(credentials)

    def _url(self, path: str) -> str:
        """Construct full API URL from path."""
        return f"{API_BASE}/{path.lstrip('/')}"

    def _zonal(self, project: str, zone: str, path: str) -> str:
        return self._url(f"projects/{project}/zones/{zone}/{path}")

    def _request_with_retry(
        self, method: str, url: str, retry: bool = True, **kwargs
    ) -> dict:
        """
        Execute HTTP request with exponential backoff retry for transient errors.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            url: Request URL
            retry: When False, make a single attempt and return transient
                error responses to the caller
            **kwargs: Additional request parameters

        Returns:
            Dictionary with 'response' and 'status_code' keys

        Raises:
            ApiError: If max retries exceeded (status_code is None for
                network failures)
        """
        last_error = None
        last_status: Optional[int] = None
        attempts = self.max_retries + 1 if retry else 1

        for attempt in range(attempts):
            try:
                resp = self.session.request(
                    method.upper(), url, timeout=self.timeout_s, **kwargs
                )

                if retry and resp.status_code in self.RETRYABLE_STATUS_CODES:
                    delay = self._calculate_delay(attempt, resp)
                    error_info = self._error_message(resp)
                    logger.warning(
                        f"Retryable error {resp.status_code} ({error_info}), attempt {attempt + 1}/{attempts}, waiting {delay:.1f}s..."
                    )
                    last_error = error_info or resp.text[:200]
                    last_status = resp.status_code
                    time.sleep(delay)
                    continue

                return {"response": resp, "status_code": resp.status_code}

            except requests.exceptions.RequestException as e:
                if not retry:
                    raise ApiError(None, f"Request error: {e}") from e
                delay = self._calculate_delay(attempt)
                logger.warning(
                    f"Request error: {e}, attempt {attempt + 1}/{attempts}, waiting {delay:.1f}s..."
                )
                last_error = str(e)
                last_status = None
                time.sleep(delay)

        raise ApiError(last_status, f"Max retries exceeded. Last error: {last_error}")

    def _calculate_delay(self, attempt: int, resp=None) -> float:
        """
        Calculate delay with exponential backoff and jitter.

        Args:
            attempt: Current attempt number
            resp: Optional response object (to check Retry-After header)

        Returns:
            Delay in seconds
        """
        if resp is not None and "Retry-After" in resp.headers:
            try:
                return float(resp.headers["Retry-After"])
            except ValueError:
                pass

        delay = self.base_delay * (2**attempt)
        jitter = delay * 0.2 * (0.5 - time.time() % 1)
        return min(delay + jitter, 180.0)

    @staticmethod
    def _error_message(resp) -> str:
        try:
            return resp.json().get("error", {}).get("message", "")
        except ValueError:
            return ""

    def _call(self, method: str, url: str, activity: str, **kwargs) -> Dict:
        """Issue a request and return the decoded JSON body, raising ApiError on failure."""
        result = self._request_with_retry(method, url, **kwargs)
        resp = result["response"]
        if resp.status_code == 404:
            raise NotFoundError(404, self._error_message(resp) or resp.text, activity)
        if not 200 <= resp.status_code < 300:
            raise ApiError(
                resp.status_code, self._error_message(resp) or resp.text, activity
            )
        return resp.json()

    def get_instance_group_manager(self, project: str, zone: str, name: str) -> Dict:
        """
        Get a managed instance group.

        Raises:
            NotFoundError: If the group does not exist
            ApiError: If the API call fails
        """
        url = self._zonal(project, zone, f"instanceGroupManagers/{name}")
        return self._call(
            "GET", url, f"Error reading InstanceGroupManager {name!r}"
        )

    def insert_instance_group_manager(
        self, project: str, zone: str, manager: Dict
    ) -> Dict:
        """
        Create a managed instance group.

        Returns:
            Zone operation resource
        """
        url = self._zonal(project, zone, "instanceGroupManagers")
        return self._call(
            "POST", url, "Error creating InstanceGroupManager", json=manager
        )

    def patch_instance_group_manager(
        self, project: str, zone: str, name: str, manager: Dict
    ) -> Dict:
        """
        Apply a partial update; ``manager`` should carry the current fingerprint.

        Returns:
            Zone operation resource
        """
        url = self._zonal(project, zone, f"instanceGroupManagers/{name}")
        return self._call(
            "PATCH", url, "Error updating managed group instances", json=manager
        )

    def resize_instance_group_manager(
        self, project: str, zone: str, name: str, size: int
    ) -> Dict:
        """
        Change the target size of a managed instance group.

        Returns:
            Zone operation resource
        """
        url = self._zonal(project, zone, f"instanceGroupManagers/{name}/resize")
        return self._call(
            "POST",
            url,
            "Error resizing InstanceGroupManager",
            params={"size": size},
        )

    def delete_instance_group_manager(self, project: str, zone: str, name: str) -> Dict:
        """
        Delete a managed instance group and all of its instances.

        A single attempt is made; the caller owns the retry policy.

        Returns:
            Zone operation resource
        """
        url = self._zonal(project, zone, f"instanceGroupManagers/{name}")
        return self._call(
            "DELETE", url, "Error deleting instance group manager", retry=False
        )

    def get_instance_group(self, project: str, zone: str, name: str) -> Dict:
        """Get the unmanaged view of a group (used for its ``size``)."""
        url = self._zonal(project, zone, f"instanceGroups/{name}")
        return self._call("GET", url, "Error getting instance group size")

    def set_named_ports(
        self,
        project: str,
        zone: str,
        name: str,
        named_ports: List[Dict],
    ) -> Dict:
        """
        Replace the named ports of an instance group.

        Named ports cannot be changed through the manager's PATCH method, so
        they are set on the underlying instance group instead.

        Returns:
            Zone operation resource
        """
        url = self._zonal(project, zone, f"instanceGroups/{name}/setNamedPorts")
        return self._call(
            "POST",
            url,
            "Error updating InstanceGroupManager",
            json={"namedPorts": named_ports},
        )

    def get_region(self, project: str, region: str) -> Dict:
        """Get a region resource; its ``zones`` field lists zone URLs."""
        url = self._url(f"projects/{project}/regions/{region}")
        return self._call("GET", url, f"Error reading region {region!r}")

    def get_zone_operation(self, project: str, zone: str, operation: str) -> Dict:
        """
        Get status of a zonal long-running operation.

        Args:
            project: Project ID
            zone: Zone of the operation
            operation: Operation name

        Returns:
            Operation resource
        """
        url = self._zonal(project, zone, f"operations/{operation}")
        return self._call("GET", url, f"Error polling operation {operation}")
