"""
Unit tests for data models.
"""

import unittest

from errors import ValidationError
from models import (
    AutoHealingPolicy,
    FixedOrPercent,
    InstanceGroupManager,
    NamedPort,
    UpdatePolicy,
    Version,
)


def valid_config(**overrides):
    igm = InstanceGroupManager(
        name="web",
        base_instance_name="web",
        versions=[Version("v1", "t1", FixedOrPercent(percent=100))],
    )
    for key, value in overrides.items():
        setattr(igm, key, value)
    return igm


class TestValidation(unittest.TestCase):
    """Test InstanceGroupManager.validate."""

    def test_valid_config(self):
        """Test a minimal configuration passes."""
        valid_config().validate()

    def test_invalid_name(self):
        """Test names outside [a-z0-9-] are rejected."""
        with self.assertRaises(ValidationError):
            valid_config(name="Web_1").validate()

    def test_version_required(self):
        """Test at least one version is required."""
        with self.assertRaises(ValidationError):
            valid_config(versions=[]).validate()

    def test_percent_range(self):
        """Test version percent must be within 0-100."""
        with self.assertRaises(ValidationError):
            valid_config(
                versions=[Version("v1", "t1", FixedOrPercent(percent=101))]
            ).validate()

    def test_single_auto_healing_policy(self):
        """Test at most one auto-healing policy is allowed."""
        with self.assertRaises(ValidationError):
            valid_config(
                auto_healing_policies=[
                    AutoHealingPolicy("hc1", 10),
                    AutoHealingPolicy("hc2", 10),
                ]
            ).validate()

    def test_initial_delay_range(self):
        """Test initial_delay_sec must be within 0-3600."""
        with self.assertRaises(ValidationError):
            valid_config(
                auto_healing_policies=[AutoHealingPolicy("hc", 3601)]
            ).validate()

    def test_update_policy_enums(self):
        """Test minimal_action and type are restricted."""
        with self.assertRaises(ValidationError):
            valid_config(update_policy=UpdatePolicy("REBOOT", "PROACTIVE")).validate()
        with self.assertRaises(ValidationError):
            valid_config(update_policy=UpdatePolicy("RESTART", "EAGER")).validate()

    def test_update_policy_conflicting_surge(self):
        """Test fixed and percent surge cannot both be set."""
        policy = UpdatePolicy(
            "RESTART", "PROACTIVE", max_surge=FixedOrPercent(fixed=1, percent=10)
        )
        with self.assertRaises(ValidationError):
            valid_config(update_policy=policy).validate()

    def test_validation_error_is_value_error(self):
        """Test ValidationError can be handled as ValueError."""
        with self.assertRaises(ValueError):
            valid_config(base_instance_name="").validate()


class TestSerialization(unittest.TestCase):
    """Test JSON document conversion."""

    def test_from_dict(self):
        """Test a document with single-item blocks given as objects or lists."""
        igm = InstanceGroupManager.from_dict(
            {
                "name": "web",
                "base_instance_name": "web",
                "zone": "us-central1-a",
                "target_size": 2,
                "named_port": [{"name": "http", "port": 80}],
                "target_pools": ["pool-a"],
                "version": [
                    {"name": "v1", "instance_template": "t1", "target_size": {"fixed": 2}},
                    {"name": "v2", "instance_template": "t2", "target_size": []},
                ],
                "update_policy": [
                    {
                        "minimal_action": "REPLACE",
                        "type": "PROACTIVE",
                        "max_surge_percent": 20,
                        "min_ready_sec": 5,
                    }
                ],
            }
        )

        self.assertEqual(igm.named_ports, {NamedPort("http", 80)})
        self.assertEqual(igm.target_pools, {"pool-a"})
        self.assertEqual(igm.versions[0].target_size, FixedOrPercent(fixed=2))
        self.assertIsNone(igm.versions[1].target_size)
        self.assertEqual(igm.update_policy.max_surge, FixedOrPercent(percent=20))
        self.assertEqual(igm.update_policy.max_unavailable, FixedOrPercent())
        self.assertEqual(igm.update_policy.min_ready_sec, 5)
        self.assertFalse(igm.wait_for_instances)
        self.assertEqual(igm.id, "")

    def test_to_dict_round_trip(self):
        """Test to_dict output is accepted by from_dict."""
        igm = valid_config(
            id="p/us-central1-a/web",
            named_ports={NamedPort("http", 80)},
            auto_healing_policies=[AutoHealingPolicy("hc", 30)],
            update_policy=UpdatePolicy(
                "RESTART", "OPPORTUNISTIC", max_unavailable=FixedOrPercent(fixed=1)
            ),
            fingerprint="fp",
        )

        self.assertEqual(InstanceGroupManager.from_dict(igm.to_dict()), igm)

    def test_to_dict_shape(self):
        """Test list-shaped single-item blocks in the document."""
        data = valid_config().to_dict()

        self.assertEqual(data["version"][0]["target_size"], [{"percent": 100}])
        self.assertEqual(data["update_policy"], [])
        self.assertEqual(data["named_port"], [])


if __name__ == "__main__":
    unittest.main()
