"""Tests for PeerPoseRegistry and AgentPose."""

from __future__ import annotations

import math

import pytest

from flockpilot.errors import FlockError, RosterFull
from flockpilot.swarm.pose import AgentPose
from flockpilot.swarm.registry import PeerPoseRegistry


# ---------------------------------------------------------------------------
# AgentPose
# ---------------------------------------------------------------------------


class TestAgentPose:
    def test_theta_is_wrapped(self):
        pose = AgentPose("r1", 0.0, 0.0, 3 * math.pi / 2)
        assert pose.theta == pytest.approx(-math.pi / 2)

    def test_minus_pi_becomes_pi(self):
        pose = AgentPose("r1", 0.0, 0.0, -math.pi)
        assert pose.theta == pytest.approx(math.pi)

    def test_is_frozen(self):
        pose = AgentPose("r1", 1.0, 2.0, 0.0)
        with pytest.raises(AttributeError):
            pose.identity = "r2"

    def test_staleness(self):
        pose = AgentPose("r1", 0.0, 0.0, 0.0, last_seen=100.0)
        assert pose.age(now=105.0) == pytest.approx(5.0)
        assert pose.is_stale(4.0, now=105.0) is True
        assert pose.is_stale(6.0, now=105.0) is False

    def test_equality_ignores_last_seen(self):
        a = AgentPose("r1", 1.0, 2.0, 0.5, last_seen=1.0)
        b = AgentPose("r1", 1.0, 2.0, 0.5, last_seen=2.0)
        assert a == b


# ---------------------------------------------------------------------------
# upsert / index_of / get
# ---------------------------------------------------------------------------


class TestUpsert:
    def test_first_seen_claims_first_empty_slot(self):
        reg = PeerPoseRegistry(3)
        assert reg.upsert("alpha", 0.0, 0.0, 0.0) == 0
        assert reg.upsert("beta", 1.0, 0.0, 0.0) == 1
        assert reg.upsert("gamma", 2.0, 0.0, 0.0) == 2

    def test_update_keeps_slot(self):
        reg = PeerPoseRegistry(3)
        reg.upsert("alpha", 0.0, 0.0, 0.0)
        reg.upsert("beta", 1.0, 0.0, 0.0)
        assert reg.upsert("alpha", 5.0, 6.0, 1.0) == 0
        pose = reg.get(0)
        assert (pose.identity, pose.x, pose.y, pose.theta) == ("alpha", 5.0, 6.0, 1.0)

    def test_update_overwrites_whole_slot(self):
        reg = PeerPoseRegistry(2)
        reg.upsert("alpha", 0.0, 0.0, 0.0, now=1.0)
        reg.upsert("alpha", 1.0, 1.0, 1.0, now=2.0)
        assert reg.get(0).last_seen == 2.0

    def test_index_of_unknown_is_none(self):
        reg = PeerPoseRegistry(2)
        assert reg.index_of("ghost") is None

    def test_get_empty_and_out_of_range(self):
        reg = PeerPoseRegistry(2)
        assert reg.get(0) is None
        assert reg.get(5) is None
        assert reg.get(-1) is None

    def test_same_identity_never_takes_two_slots(self):
        reg = PeerPoseRegistry(3)
        for i in range(10):
            reg.upsert("alpha", float(i), 0.0, 0.0)
        assert reg.identities() == ["alpha"]


# ---------------------------------------------------------------------------
# RosterFull
# ---------------------------------------------------------------------------


class TestRosterFull:
    def test_third_identity_with_fleet_of_two(self):
        reg = PeerPoseRegistry(2)
        reg.upsert("alpha", 0.0, 0.0, 0.0)
        reg.upsert("beta", 1.0, 0.0, 0.0)
        with pytest.raises(RosterFull) as exc_info:
            reg.upsert("gamma", 2.0, 0.0, 0.0)
        assert exc_info.value.identity == "gamma"
        assert exc_info.value.capacity == 2
        assert reg.size() == 2
        assert reg.index_of("gamma") is None
        assert reg.identities() == ["alpha", "beta"]

    def test_known_identity_still_updates_when_full(self):
        reg = PeerPoseRegistry(1)
        reg.upsert("alpha", 0.0, 0.0, 0.0)
        assert reg.upsert("alpha", 3.0, 0.0, 0.0) == 0

    def test_is_flock_error(self):
        assert issubclass(RosterFull, FlockError)


# ---------------------------------------------------------------------------
# Failed upserts
# ---------------------------------------------------------------------------


class TestFailedUpsert:
    def test_bad_value_leaves_registry_unchanged(self):
        reg = PeerPoseRegistry(2)
        with pytest.raises(ValueError):
            reg.upsert("alpha", "bogus", 0.0, 0.0)
        assert reg.index_of("alpha") is None
        assert reg.is_full() is False
        assert reg.to_dict()["occupied"] == 0

    def test_next_identity_gets_its_own_slot(self):
        reg = PeerPoseRegistry(2)
        with pytest.raises(ValueError):
            reg.upsert("alpha", "bogus", 0.0, 0.0)
        assert reg.upsert("beta", 1.0, 1.0, 0.0) == 0
        assert reg.upsert("alpha", 2.0, 2.0, 0.0) == 1
        assert reg.identities() == ["beta", "alpha"]

    def test_bad_update_keeps_previous_pose(self):
        reg = PeerPoseRegistry(1)
        reg.upsert("alpha", 1.0, 2.0, 0.5)
        with pytest.raises(ValueError):
            reg.upsert("alpha", "bogus", 0.0, 0.0)
        assert (reg.get(0).x, reg.get(0).y) == (1.0, 2.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_size_is_capacity(self):
        reg = PeerPoseRegistry(6)
        reg.upsert("alpha", 0.0, 0.0, 0.0)
        assert reg.size() == 6
        assert len(reg) == 6

    def test_zero_capacity_rejected(self):
        with pytest.raises(ValueError):
            PeerPoseRegistry(0)

    def test_occupied_in_slot_order(self):
        reg = PeerPoseRegistry(4)
        reg.upsert("b", 0.0, 0.0, 0.0)
        reg.upsert("a", 0.0, 0.0, 0.0)
        assert [(i, p.identity) for i, p in reg.occupied()] == [(0, "b"), (1, "a")]

    def test_is_full(self):
        reg = PeerPoseRegistry(1)
        assert reg.is_full() is False
        reg.upsert("a", 0.0, 0.0, 0.0)
        assert reg.is_full() is True

    def test_to_dict(self):
        reg = PeerPoseRegistry(2)
        reg.upsert("a", 1.0, 2.0, 0.5)
        d = reg.to_dict()
        assert d["size"] == 2
        assert d["occupied"] == 1
        assert d["slots"][0] == {"identity": "a", "x": 1.0, "y": 2.0, "theta": 0.5}
        assert d["slots"][1] is None
