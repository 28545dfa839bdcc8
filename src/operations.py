"""
Polling of Compute Engine zonal long-running operations.
"""

import logging
import time
from typing import Dict

from clients import ComputeRestClient
from errors import ApiError, OperationError, OperationTimeoutError
from self_links import get_resource_name_from_self_link

logger = logging.getLogger(__name__)


def _operation_errors(op: Dict) -> str:
    errors = op.get("error", {}).get("errors", [])
    return "; ".join(
        e.get("message") or e.get("code", "unknown error") for e in errors
    )


def wait_for_zone_operation(
    client: ComputeRestClient,
    operation: Dict,
    project: str,
    activity: str,
    timeout: int = 900,
    poll_interval: int = 5,
) -> Dict:
    """
    Block until a zonal operation is DONE.

    Args:
        client: Compute REST client
        operation: Operation resource returned by a mutating call
        project: Project the operation belongs to
        activity: Human readable description used in log and error messages
        timeout: Maximum time to wait (seconds)
        poll_interval: Time between operation polls (seconds)

    Returns:
        The finished operation resource

    Raises:
        OperationError: If the operation finished with errors
        OperationTimeoutError: If the operation was not DONE within ``timeout``
    """
    op_name = operation.get("name", "")
    zone = get_resource_name_from_self_link(operation.get("zone", ""))
    start = time.time()
    op = operation

    while True:
        if op.get("status") == "DONE":
            if op.get("error", {}).get("errors"):
                raise OperationError(f"Error {activity}: {_operation_errors(op)}")
            logger.debug(f"{activity}: operation {op_name} done")
            return op

        elapsed = time.time() - start
        if elapsed > timeout:
            raise OperationTimeoutError(
                f"Error {activity}: timeout while waiting for operation "
                f"{op_name} to complete after {elapsed:.0f}s"
            )

        time.sleep(poll_interval)
        try:
            op = client.get_zone_operation(project, zone, op_name)
        except ApiError as e:
            if not e.retryable:
                raise OperationError(f"Error {activity}: {e}") from e
            logger.warning(f"Failed polling op {op_name} for {activity}: {e}")
