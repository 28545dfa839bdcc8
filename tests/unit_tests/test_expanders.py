"""
Unit tests for the configuration <-> API transcoders.
"""

import unittest

from expanders import (
    expand_auto_healing_policies,
    expand_fixed_or_percent,
    expand_instance_group_manager,
    expand_named_ports,
    expand_update_policy,
    expand_versions,
    flatten_auto_healing_policies,
    flatten_fixed_or_percent,
    flatten_named_ports,
    flatten_update_policy,
    flatten_versions,
)
from models import (
    AutoHealingPolicy,
    FixedOrPercent,
    InstanceGroupManager,
    NamedPort,
    UpdatePolicy,
    Version,
)


class TestFixedOrPercent(unittest.TestCase):
    """Test the fixed-or-percent union encoding."""

    def test_expand_percent_wins(self):
        """Test a positive percent takes precedence over fixed."""
        self.assertEqual(
            expand_fixed_or_percent(FixedOrPercent(fixed=3, percent=40)),
            {"percent": 40},
        )

    def test_expand_fixed_sent_when_zero(self):
        """Test fixed is sent explicitly even when zero."""
        self.assertEqual(expand_fixed_or_percent(FixedOrPercent(fixed=0)), {"fixed": 0})
        self.assertEqual(expand_fixed_or_percent(FixedOrPercent()), {"fixed": 0})
        self.assertEqual(
            expand_fixed_or_percent(FixedOrPercent(fixed=2, percent=0)), {"fixed": 2}
        )

    def test_expand_none(self):
        """Test an unset value is omitted."""
        self.assertIsNone(expand_fixed_or_percent(None))

    def test_expand_clear_other(self):
        """Test the losing member is nulled for PATCH requests."""
        self.assertEqual(
            expand_fixed_or_percent(FixedOrPercent(percent=10), clear_other=True),
            {"percent": 10, "fixed": None},
        )
        self.assertEqual(
            expand_fixed_or_percent(FixedOrPercent(fixed=1), clear_other=True),
            {"fixed": 1, "percent": None},
        )

    def test_flatten_dominant_member(self):
        """Test flatten emits percent, then fixed, then nothing."""
        self.assertEqual(
            flatten_fixed_or_percent({"percent": 25, "fixed": 2, "calculated": 2}),
            FixedOrPercent(percent=25),
        )
        self.assertEqual(
            flatten_fixed_or_percent({"fixed": 2, "calculated": 2}),
            FixedOrPercent(fixed=2),
        )
        self.assertIsNone(flatten_fixed_or_percent({"fixed": 0, "calculated": 0}))
        self.assertIsNone(flatten_fixed_or_percent({}))
        self.assertIsNone(flatten_fixed_or_percent(None))

    def test_flatten_of_expand_reproduces_single_member(self):
        """Test configurations with exactly one positive member round-trip."""
        for value in (
            FixedOrPercent(fixed=1),
            FixedOrPercent(fixed=7),
            FixedOrPercent(percent=1),
            FixedOrPercent(percent=100),
        ):
            with self.subTest(value=value):
                self.assertEqual(
                    flatten_fixed_or_percent(expand_fixed_or_percent(value)), value
                )

    def test_expand_of_flatten_keeps_dominant_member(self):
        """Test a server value reduces to its dominant member."""
        server = {"percent": 30, "fixed": 4, "calculated": 4}
        self.assertEqual(
            expand_fixed_or_percent(flatten_fixed_or_percent(server)), {"percent": 30}
        )


class TestFieldTranscoders(unittest.TestCase):
    """Test the remaining field transcoders."""

    def test_named_ports(self):
        """Test named ports are sorted on expand and become a set on flatten."""
        ports = {NamedPort("https", 443), NamedPort("http", 80)}
        expanded = expand_named_ports(ports)
        self.assertEqual(
            expanded, [{"name": "http", "port": 80}, {"name": "https", "port": 443}]
        )
        self.assertEqual(flatten_named_ports(expanded), ports)
        self.assertEqual(flatten_named_ports(None), set())

    def test_auto_healing_policies(self):
        """Test auto-healing policies map to camelCase API fields."""
        policies = [AutoHealingPolicy("global/healthChecks/hc", 120)]
        expanded = expand_auto_healing_policies(policies)
        self.assertEqual(
            expanded, [{"healthCheck": "global/healthChecks/hc", "initialDelaySec": 120}]
        )
        self.assertEqual(flatten_auto_healing_policies(expanded), policies)
        self.assertEqual(flatten_auto_healing_policies(None), [])

    def test_versions(self):
        """Test versions expand and flatten, converting templates to v1 links."""
        versions = [
            Version("canary", "t-canary", FixedOrPercent(fixed=1)),
            Version("stable", "t-stable", None),
        ]
        expanded = expand_versions(versions)
        self.assertEqual(
            expanded,
            [
                {"name": "canary", "instanceTemplate": "t-canary", "targetSize": {"fixed": 1}},
                {"name": "stable", "instanceTemplate": "t-stable"},
            ],
        )
        self.assertEqual(flatten_versions(expanded), versions)

        flattened = flatten_versions(
            [
                {
                    "name": "v1",
                    "instanceTemplate": "https://www.googleapis.com/compute/beta/projects/p/global/instanceTemplates/t1",
                }
            ]
        )
        self.assertEqual(
            flattened[0].instance_template,
            "https://www.googleapis.com/compute/v1/projects/p/global/instanceTemplates/t1",
        )

    def test_update_policy(self):
        """Test update policy encoding and the zero-fixed read-back."""
        policy = UpdatePolicy(
            minimal_action="REPLACE",
            type="PROACTIVE",
            max_surge=FixedOrPercent(percent=20, fixed=5),
            max_unavailable=FixedOrPercent(fixed=0),
        )
        expanded = expand_update_policy(policy)
        self.assertEqual(
            expanded,
            {
                "minimalAction": "REPLACE",
                "type": "PROACTIVE",
                "maxSurge": {"percent": 20, "fixed": None},
                "maxUnavailable": {"fixed": 0, "percent": None},
                "minReadySec": 0,
            },
        )

        flattened = flatten_update_policy(
            {
                "minimalAction": "REPLACE",
                "type": "PROACTIVE",
                "maxSurge": {"percent": 20, "calculated": 1},
                "maxUnavailable": {"fixed": 0, "calculated": 0},
            }
        )
        self.assertEqual(flattened.max_surge, FixedOrPercent(percent=20))
        self.assertEqual(flattened.max_unavailable, FixedOrPercent(fixed=0))
        self.assertEqual(flattened.min_ready_sec, 0)
        self.assertEqual(expand_update_policy(flattened), expanded)

    def test_update_policy_unset_quantities_omitted(self):
        """Test surge/unavailable left unconfigured are not sent, explicit zero is."""
        expanded = expand_update_policy(
            UpdatePolicy(
                "REPLACE", "PROACTIVE", max_unavailable=FixedOrPercent(fixed=0)
            )
        )

        self.assertNotIn("maxSurge", expanded)
        self.assertEqual(expanded["maxUnavailable"], {"fixed": 0, "percent": None})

    def test_update_policy_absent(self):
        """Test a missing update policy."""
        self.assertEqual(expand_update_policy(None), {})
        self.assertIsNone(flatten_update_policy(None))
        self.assertIsNone(flatten_update_policy({}))

    def test_expand_instance_group_manager(self):
        """Test the full insert body."""
        igm = InstanceGroupManager(
            name="web",
            base_instance_name="web",
            description="desc",
            target_size=0,
            target_pools={"b-pool", "a-pool"},
            versions=[Version("v1", "t1", FixedOrPercent(percent=100))],
            update_policy=UpdatePolicy("RESTART", "OPPORTUNISTIC", min_ready_sec=10),
        )

        body = expand_instance_group_manager(igm)

        self.assertEqual(body["targetSize"], 0)
        self.assertEqual(body["targetPools"], ["a-pool", "b-pool"])
        self.assertEqual(body["namedPorts"], [])
        self.assertEqual(body["autoHealingPolicies"], [])
        self.assertEqual(body["updatePolicy"]["minReadySec"], 10)
        self.assertNotIn("maxSurge", body["updatePolicy"])
        self.assertNotIn("maxUnavailable", body["updatePolicy"])


if __name__ == "__main__":
    unittest.main()
