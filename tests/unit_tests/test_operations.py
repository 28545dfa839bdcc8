"""
Unit tests for zonal operation polling.
"""

import unittest
from unittest.mock import MagicMock, patch

from clients import ComputeRestClient
from errors import ApiError, OperationError, OperationTimeoutError
from operations import wait_for_zone_operation

ZONE_URL = "https://www.googleapis.com/compute/beta/projects/p/zones/us-central1-a"


def op(status, **extra):
    data = {"name": "operation-1", "zone": ZONE_URL, "status": status}
    data.update(extra)
    return data


@patch("operations.time.sleep")
class TestWaitForZoneOperation(unittest.TestCase):
    """Test wait_for_zone_operation."""

    def setUp(self):
        self.client = MagicMock(spec=ComputeRestClient)

    def test_done_immediately(self, mock_sleep):
        """Test an already finished operation is returned without polling."""
        result = wait_for_zone_operation(self.client, op("DONE"), "p", "Creating")

        self.assertEqual(result["status"], "DONE")
        self.client.get_zone_operation.assert_not_called()
        mock_sleep.assert_not_called()

    def test_polls_until_done(self, mock_sleep):
        """Test pending operations are polled by name in their zone."""
        self.client.get_zone_operation.side_effect = [op("RUNNING"), op("DONE")]

        wait_for_zone_operation(
            self.client, op("PENDING"), "p", "Creating", poll_interval=7
        )

        self.client.get_zone_operation.assert_called_with(
            "p", "us-central1-a", "operation-1"
        )
        self.assertEqual(self.client.get_zone_operation.call_count, 2)
        mock_sleep.assert_called_with(7)

    def test_operation_error(self, mock_sleep):
        """Test a finished operation carrying errors raises OperationError."""
        failed = op(
            "DONE",
            error={"errors": [{"code": "ZONE_RESOURCE_POOL_EXHAUSTED", "message": "no capacity"}]},
        )

        with self.assertRaises(OperationError) as ctx:
            wait_for_zone_operation(self.client, failed, "p", "Creating InstanceGroupManager")

        self.assertIn("no capacity", str(ctx.exception))
        self.assertIn("Creating InstanceGroupManager", str(ctx.exception))

    def test_timeout(self, mock_sleep):
        """Test an operation that never finishes raises OperationTimeoutError."""
        self.client.get_zone_operation.return_value = op("RUNNING")

        with self.assertRaises(OperationTimeoutError) as ctx:
            wait_for_zone_operation(self.client, op("RUNNING"), "p", "Deleting", timeout=-1)

        self.assertIn("timeout", str(ctx.exception))
        self.assertTrue(issubclass(OperationTimeoutError, OperationError))

    def test_transient_poll_error_is_retried(self, mock_sleep):
        """Test a retryable polling failure does not abort the wait."""
        self.client.get_zone_operation.side_effect = [
            ApiError(503, "unavailable"),
            op("DONE"),
        ]

        result = wait_for_zone_operation(self.client, op("RUNNING"), "p", "Updating")

        self.assertEqual(result["status"], "DONE")

    def test_permanent_poll_error(self, mock_sleep):
        """Test a permanent polling failure surfaces as OperationError."""
        self.client.get_zone_operation.side_effect = ApiError(403, "forbidden")

        with self.assertRaises(OperationError):
            wait_for_zone_operation(self.client, op("RUNNING"), "p", "Updating")


if __name__ == "__main__":
    unittest.main()
