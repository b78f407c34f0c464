"""
Scoring Engine for the Podium application

This module turns a race's official classification into points for every
prediction set entered into a league. For standings built from the stored
scores, see podium/utils/standings.py
"""

from collections import defaultdict

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from podium import db
from podium.models import (
    LeagueRace,
    Prediction,
    PredictionApplication,
    Race,
    Score,
)
from podium.utils.cache_utils import invalidate_standings
from podium.utils.errors import ErrorCode, ServiceResult
from podium.utils.lock_policy import LockTier
from podium.utils.logging_config import ContextualLogger
from podium.utils.timezone_utils import get_utc_time


DEFAULT_TIER_POINTS = {
    LockTier.FP1.value: 20,
    LockTier.QUALIFYING.value: 15,
    LockTier.RACE.value: 10,
}


def calculate_pick_points(predicted_position, actual_position, max_points):
    """
    Points for one pick: the ceiling minus the distance between predicted
    and actual position, floored at zero.
    """
    return max(0, max_points - abs(predicted_position - actual_position))


class ScoringEngine:
    """Scores races using per-pick ceilings"""

    def __init__(self, tier_points=None):
        if tier_points is None:
            tier_points = (
                current_app.config.get("LOCK_TIER_POINTS", DEFAULT_TIER_POINTS)
                if has_app_context()
                else DEFAULT_TIER_POINTS
            )
        self.tier_points = {
            LockTier.parse(tier).value: int(points)
            for tier, points in tier_points.items()
        }

    def ceiling_for(self, lock_type):
        """Max points per correctly placed driver for a lock tier"""
        return self.tier_points[LockTier.parse(lock_type).value]

    def calculate_prediction_points(self, picks, actual_positions):
        """
        Total points of one prediction set.

        Args:
            picks: iterable of Prediction rows (or objects with driver_id,
                predicted_position and max_points_per_driver)
            actual_positions: {driver_id: finishing position}

        Drivers without an official position score zero.
        """
        total = 0
        for pick in picks:
            actual = actual_positions.get(pick.driver_id)
            if actual is None:
                continue
            total += calculate_pick_points(
                pick.predicted_position, actual, pick.max_points_per_driver
            )
        return total

    def score_race(self, race_id):
        """
        Recompute and store every league score for a race.

        Safe to re-run: each (league, race, user) score is overwritten, and
        scores whose application no longer exists are removed.
        """
        log = ContextualLogger(__name__, {"race_id": race_id})

        race = db.session.get(Race, race_id)
        if not race:
            return ServiceResult.fail(ErrorCode.RACE_NOT_FOUND)

        actual_positions = race.get_actual_positions()
        if not actual_positions:
            return ServiceResult.fail(ErrorCode.NO_RESULTS_RECORDED)

        log.info("Calculating scores")

        try:
            if not race.is_completed:
                race.is_completed = True

            league_ids = LeagueRace.get_league_ids_for_race(race_id)

            applicants = defaultdict(set)
            for app_row in PredictionApplication.query.filter(
                PredictionApplication.race_id == race_id,
                PredictionApplication.league_id.in_(league_ids),
            ).all():
                applicants[app_row.league_id].add(app_row.user_id)

            user_ids = set().union(*applicants.values()) if applicants else set()
            picks_by_user = defaultdict(list)
            if user_ids:
                for pick in Prediction.query.filter(
                    Prediction.race_id == race_id,
                    Prediction.user_id.in_(user_ids),
                ).all():
                    picks_by_user[pick.user_id].append(pick)

            totals = {
                user_id: self.calculate_prediction_points(
                    picks_by_user[user_id], actual_positions
                )
                for user_id in user_ids
            }

            existing = {
                (s.league_id, s.user_id): s
                for s in Score.query.filter_by(race_id=race_id).all()
            }

            now = get_utc_time()
            users_processed = 0
            for league_id in league_ids:
                for user_id in sorted(applicants.get(league_id, ())):
                    score = existing.pop((league_id, user_id), None)
                    if score is None:
                        score = Score(
                            league_id=league_id, race_id=race_id, user_id=user_id
                        )
                        db.session.add(score)
                    score.points = totals[user_id]
                    score.calculated_at = now
                    users_processed += 1

            # Whatever is left has no application behind it anymore
            stale_leagues = set()
            for (league_id, user_id), score in existing.items():
                stale_leagues.add(league_id)
                db.session.delete(score)

            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.error(f"Score calculation failed - SQL error: {e}")
            return ServiceResult.fail(ErrorCode.STORAGE_ERROR)

        for league_id in set(league_ids) | stale_leagues:
            invalidate_standings(league_id, race_id)

        log.info(
            f"Scores calculated: {users_processed} users in {len(league_ids)} leagues"
        )

        return ServiceResult.ok(
            {
                "races_processed": 1,
                "leagues_processed": len(league_ids),
                "users_processed": users_processed,
            },
            "Scores calculated successfully",
        )


def score_race(race_id, tier_points=None):
    """Convenience wrapper around ScoringEngine.score_race"""
    return ScoringEngine(tier_points).score_race(race_id)
