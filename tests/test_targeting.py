"""
tests/test_targeting.py — Availability, Audience & Prerequisites
=================================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

from questline.engine.targeting import (
    as_utc,
    is_mission_available,
    is_targeted,
    is_within_window,
    parse_target_players,
    prerequisite_satisfied,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def _mission(**overrides):
    fields = dict(
        is_active=True,
        start_date=None,
        end_date=None,
        target_type="all",
        target_players=None,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestWindow:
    def test_unbounded(self):
        assert is_within_window(None, None, NOW)

    def test_before_start(self):
        assert not is_within_window(NOW + timedelta(days=1), None, NOW)

    def test_after_end(self):
        assert not is_within_window(None, NOW - timedelta(seconds=1), NOW)

    def test_bounds_are_inclusive(self):
        assert is_within_window(NOW, NOW, NOW)

    def test_naive_datetimes_are_utc(self):
        naive_end = datetime(2026, 6, 1, 11, 0)
        assert as_utc(naive_end).tzinfo is UTC
        assert not is_within_window(None, naive_end, NOW)


class TestAudience:
    def test_all(self):
        assert is_targeted("all", None, 7)

    def test_specific_membership(self):
        assert is_targeted("specific", "[7, 8]", 7)
        assert not is_targeted("specific", "[8]", 7)

    def test_specific_with_string_ids(self):
        assert parse_target_players('["7", "x", 9]') == [7, 9]
        assert is_targeted("specific", '["7"]', 7)

    def test_specific_malformed_list_targets_nobody(self):
        assert parse_target_players("not json") is None
        assert not is_targeted("specific", "not json", 7)

    def test_filtered_passes_everyone(self):
        assert is_targeted("filtered", None, 7)

    def test_unknown_type_targets_nobody(self):
        assert not is_targeted("vip", None, 7)


class TestMissionAvailability:
    def test_inactive(self):
        assert not is_mission_available(_mission(is_active=False), 1, NOW)

    def test_outside_window(self):
        m = _mission(start_date=NOW + timedelta(hours=1))
        assert not is_mission_available(m, 1, NOW)

    def test_targeted_player(self):
        m = _mission(target_type="specific", target_players="[1]")
        assert is_mission_available(m, 1, NOW)
        assert not is_mission_available(m, 2, NOW)


class TestPrerequisite:
    def test_no_prerequisite(self):
        assert prerequisite_satisfied(None, None)

    def test_requires_completed_status(self):
        assert prerequisite_satisfied(3, "completed")
        assert not prerequisite_satisfied(3, "in_progress")
        assert not prerequisite_satisfied(3, None)
