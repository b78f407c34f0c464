"""
Lock policy for prediction sets.

A prediction set is locked at a tier chosen when it is submitted. Each tier
is governed by one of the race's session deadlines; the earlier the tier, the
higher the ceiling it earns and the sooner it stops being editable.
"""

from enum import Enum

from podium.utils.timezone_utils import ensure_utc, get_utc_time


class LockTier(str, Enum):
    FP1 = "fp1"
    QUALIFYING = "qualifying"
    RACE = "race"

    @classmethod
    def parse(cls, value):
        """LockTier for a tier name; raises ValueError for unknown names"""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.RACE
        return cls(str(value).strip().lower())


def lock_deadline(race, lock_type):
    """Deadline governing a tier, or None when the race has none configured"""
    tier = LockTier.parse(lock_type)
    if tier is LockTier.FP1:
        return ensure_utc(race.fp1_date)
    if tier is LockTier.QUALIFYING:
        return ensure_utc(race.qualifying_date)
    return ensure_utc(race.race_date)


def can_edit(race, lock_type, now=None):
    """Whether a set locked at `lock_type` may still be edited or deleted.

    fp1/qualifying tiers without a configured deadline stay editable; the
    race start is enforced separately on submission.
    """
    now = ensure_utc(now) if now else get_utc_time()
    deadline = lock_deadline(race, lock_type)
    if deadline is None:
        return True
    return now < deadline
