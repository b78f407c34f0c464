from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from podium.utils.lock_policy import LockTier, can_edit, lock_deadline

NOW = datetime(2025, 5, 23, 12, 0, tzinfo=timezone.utc)


def make_race(fp1=None, qualifying=None, race=timedelta(hours=48)):
    # Stored values are naive UTC
    def at(offset):
        return (NOW + offset).replace(tzinfo=None) if offset is not None else None

    return SimpleNamespace(
        fp1_date=at(fp1), qualifying_date=at(qualifying), race_date=at(race)
    )


class TestLockTier:
    def test_parse_names(self):
        assert LockTier.parse("fp1") is LockTier.FP1
        assert LockTier.parse("Qualifying") is LockTier.QUALIFYING
        assert LockTier.parse(" race ") is LockTier.RACE

    def test_missing_tier_defaults_to_race(self):
        assert LockTier.parse(None) is LockTier.RACE

    def test_unknown_tier_rejected(self):
        with pytest.raises(ValueError):
            LockTier.parse("sprint")


class TestDeadlines:
    def test_each_tier_uses_its_session(self):
        race = make_race(
            fp1=timedelta(hours=1), qualifying=timedelta(hours=24), race=timedelta(hours=48)
        )
        assert lock_deadline(race, "fp1") == NOW + timedelta(hours=1)
        assert lock_deadline(race, "qualifying") == NOW + timedelta(hours=24)
        assert lock_deadline(race, "race") == NOW + timedelta(hours=48)

    def test_deadline_is_exclusive(self):
        race = make_race(fp1=timedelta(0))
        assert can_edit(race, "fp1", NOW - timedelta(seconds=1))
        assert not can_edit(race, "fp1", NOW)

    def test_early_tier_locks_while_race_tier_stays_open(self):
        race = make_race(
            fp1=-timedelta(hours=1), qualifying=timedelta(hours=2), race=timedelta(hours=5)
        )
        assert not can_edit(race, LockTier.FP1, NOW)
        assert can_edit(race, LockTier.QUALIFYING, NOW)
        assert can_edit(race, LockTier.RACE, NOW)

    def test_unset_early_deadline_stays_editable(self):
        race = make_race(race=-timedelta(hours=1))
        assert can_edit(race, "fp1", NOW)
        assert can_edit(race, "qualifying", NOW)
        assert not can_edit(race, "race", NOW)

    def test_naive_now_is_treated_as_utc(self):
        race = make_race(fp1=timedelta(hours=1))
        assert can_edit(race, "fp1", NOW.replace(tzinfo=None))
        assert not can_edit(race, "fp1", (NOW + timedelta(hours=2)).replace(tzinfo=None))
