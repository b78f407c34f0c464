"""
Race results service: recording the official classification and the read
helpers used to build prediction forms.
"""

import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from podium import db
from podium.models import Driver, Race, RaceResult
from podium.utils.errors import ErrorCode, ServiceResult
from podium.utils.scoring import ScoringEngine

logger = logging.getLogger(__name__)


def record_race_results(race_id, results, calculate=True, engine=None):
    """
    Replace the official classification of a race.

    Args:
        race_id: Race the results belong to
        results: list of {"driver_id": int, "position": int}; drivers that
            did not finish are simply left out
        calculate: Run scoring right after the results are stored
        engine: ScoringEngine used when calculate is set
    """
    race = db.session.get(Race, race_id)
    if not race:
        return ServiceResult.fail(ErrorCode.RACE_NOT_FOUND)

    if not results:
        return ServiceResult.fail(ErrorCode.EMPTY_RESULTS)

    rows = []
    for result in results:
        if not isinstance(result, dict):
            return ServiceResult.fail(ErrorCode.INVALID_POSITION)
        driver_id = result.get("driver_id", result.get("driverId"))
        position = result.get("position")
        if (
            not isinstance(position, int)
            or isinstance(position, bool)
            or position < 1
        ):
            return ServiceResult.fail(ErrorCode.INVALID_POSITION)
        if not isinstance(driver_id, int) or isinstance(driver_id, bool):
            return ServiceResult.fail(ErrorCode.INVALID_DRIVER_ID)
        rows.append((driver_id, position))

    driver_ids = [driver_id for driver_id, _ in rows]
    positions = [position for _, position in rows]
    if len(set(driver_ids)) != len(driver_ids) or len(set(positions)) != len(
        positions
    ):
        return ServiceResult.fail(ErrorCode.DUPLICATE_POSITION_OR_DRIVER)

    known = {
        row.id
        for row in db.session.query(Driver.id).filter(Driver.id.in_(driver_ids)).all()
    }
    missing = [driver_id for driver_id in driver_ids if driver_id not in known]
    if missing:
        return ServiceResult.fail(
            ErrorCode.DRIVER_NOT_FOUND,
            f"Driver {missing[0]} not found",
            driver_id=missing[0],
        )

    try:
        RaceResult.query.filter_by(race_id=race_id).delete()
        db.session.flush()

        for driver_id, position in rows:
            db.session.add(
                RaceResult(race_id=race_id, driver_id=driver_id, position=position)
            )

        race.is_completed = True
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Saving results for race {race_id} failed - SQL error: {e}")
        return ServiceResult.fail(ErrorCode.STORAGE_ERROR)

    logger.info(f"Results recorded for race {race_id}: {len(rows)} classified drivers")

    data = {"race_id": race_id, "results_count": len(rows)}

    if calculate:
        engine = engine or ScoringEngine()
        scoring = engine.score_race(race_id)
        if not scoring:
            # Results are stored; scoring can be re-triggered on its own
            return ServiceResult(
                False,
                data=data,
                error=scoring.error,
                message=f"Results saved but scoring failed: {scoring.message}",
            )
        data["scoring"] = scoring.data

    return ServiceResult.ok(data, "Results saved successfully")


def get_upcoming_races(limit=None):
    """Races still open for predictions, soonest first"""
    if limit is None:
        limit = current_app.config.get("UPCOMING_RACES_LIMIT", 24)
    return ServiceResult.ok([race.to_dict() for race in Race.get_upcoming(limit)])


def get_active_drivers():
    """Drivers that can be picked"""
    return ServiceResult.ok([driver.to_dict() for driver in Driver.get_active()])
