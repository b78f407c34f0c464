"""
Prediction service: submitting, removing and reading prediction sets, and
entering a set into leagues.

Every function returns a ServiceResult. Business-rule failures come back as
error codes; database failures are rolled back and reported as STORAGE_ERROR.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from podium import db
from podium.models import (
    Driver,
    League,
    Prediction,
    PredictionApplication,
    Race,
    User,
)
from podium.utils.cache_utils import invalidate_standings
from podium.utils.errors import ErrorCode, ServiceError, ServiceResult
from podium.utils.lock_policy import LockTier, can_edit
from podium.utils.scoring import ScoringEngine
from podium.utils.timezone_utils import ensure_utc, get_utc_time

logger = logging.getLogger(__name__)


def _normalize_picks(picks):
    """
    Validate a submitted batch of picks.

    Returns (list of (driver_id, position), None) or (None, ErrorCode).
    """
    if not picks:
        return None, ErrorCode.EMPTY_PREDICTION

    normalized = []
    for pick in picks:
        if not isinstance(pick, dict):
            return None, ErrorCode.INVALID_POSITION
        driver_id = pick.get("driver_id", pick.get("driverId"))
        position = pick.get(
            "position", pick.get("predicted_position", pick.get("predictedPosition"))
        )
        # bool is an int subclass; reject it explicitly
        if (
            not isinstance(position, int)
            or isinstance(position, bool)
            or position < 1
        ):
            return None, ErrorCode.INVALID_POSITION
        if not isinstance(driver_id, int) or isinstance(driver_id, bool):
            return None, ErrorCode.INVALID_DRIVER_ID
        normalized.append((driver_id, position))

    driver_ids = [driver_id for driver_id, _ in normalized]
    positions = [position for _, position in normalized]
    if len(set(driver_ids)) != len(driver_ids) or len(set(positions)) != len(
        positions
    ):
        return None, ErrorCode.DUPLICATE_POSITION_OR_DRIVER

    return normalized, None


def _check_drivers(driver_ids):
    drivers = Driver.query.filter(Driver.id.in_(driver_ids)).all()
    found = {driver.id: driver for driver in drivers}
    for driver_id in driver_ids:
        driver = found.get(driver_id)
        if driver is None:
            return ServiceError(
                ErrorCode.DRIVER_NOT_FOUND,
                f"Driver {driver_id} not found",
                driver_id=driver_id,
            )
        if not driver.is_active:
            return ServiceError(
                ErrorCode.DRIVER_INACTIVE,
                f"{driver.full_name} is not an active driver",
                driver_id=driver_id,
            )
    return None


def submit_prediction(user_id, race_id, picks, lock_type=None, now=None, engine=None):
    """
    Create or replace the user's prediction set for a race.

    Args:
        user_id: Predicting user
        race_id: Race being predicted
        picks: list of {"driver_id": int, "position": int}
        lock_type: fp1 | qualifying | race (default race)
        now: Reference time (default: current UTC time)
        engine: ScoringEngine providing the tier ceilings
    """
    try:
        tier = LockTier.parse(lock_type)
    except ValueError:
        return ServiceResult.fail(ErrorCode.INVALID_TIER)

    normalized, error_code = _normalize_picks(picks)
    if error_code:
        return ServiceResult.fail(error_code)

    now = ensure_utc(now) if now else get_utc_time()
    engine = engine or ScoringEngine()
    max_points = engine.ceiling_for(tier)

    try:
        # Serializes concurrent submissions of the same user
        user = db.session.get(User, user_id, with_for_update=True)
        if not user:
            db.session.rollback()
            return ServiceResult.fail(ErrorCode.USER_NOT_FOUND)

        race = db.session.get(Race, race_id)
        if not race:
            db.session.rollback()
            return ServiceResult.fail(ErrorCode.RACE_NOT_FOUND)

        if race.is_completed:
            db.session.rollback()
            return ServiceResult.fail(ErrorCode.RACE_ALREADY_COMPLETED)

        if race.has_started(now):
            db.session.rollback()
            return ServiceResult.fail(ErrorCode.RACE_ALREADY_STARTED)

        driver_error = _check_drivers([driver_id for driver_id, _ in normalized])
        if driver_error:
            db.session.rollback()
            return ServiceResult(False, error=driver_error, message=driver_error.message)

        existing_tier = Prediction.get_lock_type(user_id, race_id)
        if existing_tier is not None and not can_edit(race, existing_tier, now):
            db.session.rollback()
            return ServiceResult.fail(ErrorCode.PREDICTION_LOCKED)

        Prediction.query.filter_by(user_id=user_id, race_id=race_id).delete()
        # Old rows must be gone before the unique constraints see the new ones
        db.session.flush()

        for driver_id, position in normalized:
            db.session.add(
                Prediction(
                    race_id=race_id,
                    user_id=user_id,
                    driver_id=driver_id,
                    predicted_position=position,
                    lock_type=tier.value,
                    max_points_per_driver=max_points,
                )
            )

        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Prediction submit failed - SQL error: {e}")
        return ServiceResult.fail(ErrorCode.STORAGE_ERROR)

    logger.info(
        f"Prediction saved: user {user_id} - race {race_id} "
        f"(lock: {tier.value}, max: {max_points}pts)"
    )

    return ServiceResult.ok(
        {
            "race_id": race_id,
            "lock_type": tier.value,
            "max_points_per_driver": max_points,
            "picks": [
                {"driver_id": driver_id, "position": position}
                for driver_id, position in sorted(normalized, key=lambda p: p[1])
            ],
        },
        "Prediction saved successfully",
    )


def remove_prediction(user_id, race_id, now=None):
    """Delete the user's prediction set and its league applications"""
    now = ensure_utc(now) if now else get_utc_time()

    try:
        db.session.get(User, user_id, with_for_update=True)

        existing_tier = Prediction.get_lock_type(user_id, race_id)
        if existing_tier is None:
            db.session.rollback()
            return ServiceResult.fail(ErrorCode.PREDICTION_NOT_FOUND)

        race = db.session.get(Race, race_id)
        if not can_edit(race, existing_tier, now):
            db.session.rollback()
            return ServiceResult.fail(
                ErrorCode.PREDICTION_LOCKED,
                "Deadline passed - prediction can no longer be deleted",
            )

        PredictionApplication.query.filter_by(user_id=user_id, race_id=race_id).delete()
        Prediction.query.filter_by(user_id=user_id, race_id=race_id).delete()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Prediction delete failed - SQL error: {e}")
        return ServiceResult.fail(ErrorCode.STORAGE_ERROR)

    logger.info(f"Prediction deleted: user {user_id} - race {race_id}")
    return ServiceResult.ok(None, "Prediction deleted successfully")


def _apply_to_league(user_id, race, league_id):
    """Enter the user's set into one league. Returns a ServiceError or None."""
    league = db.session.get(League, league_id)
    if not league:
        return ServiceError(ErrorCode.LEAGUE_NOT_FOUND, league_id=league_id)

    if not league.is_user_member(user_id):
        if not league.allows_auto_join():
            return ServiceError(ErrorCode.NOT_ELIGIBLE, league_id=league_id)
        membership, message = league.add_member(user_id)
        if membership is None:
            return ServiceError(ErrorCode.NOT_ELIGIBLE, message, league_id=league_id)
        db.session.flush()
        logger.info(f"User {user_id} auto-joined league {league_id}")
        invalidate_standings(league_id)

    if not race.is_linked_to_league(league_id):
        return ServiceError(ErrorCode.RACE_NOT_IN_LEAGUE, league_id=league_id)

    application = PredictionApplication.query.filter_by(
        league_id=league_id, race_id=race.id, user_id=user_id
    ).first()
    if application is None:
        application = PredictionApplication(
            league_id=league_id, race_id=race.id, user_id=user_id
        )
        db.session.add(application)
    application.applied_at = get_utc_time()
    return None


def apply_to_leagues(user_id, race_id, league_ids):
    """
    Enter the user's prediction set for a race into a set of leagues.

    Prior applications for the race are replaced by this request. Each league
    is checked on its own; failures are reported per league and never abort
    the others.
    """
    if not league_ids:
        return ServiceResult.fail(ErrorCode.NO_LEAGUES_SELECTED)

    if any(not isinstance(i, int) or isinstance(i, bool) for i in league_ids):
        return ServiceResult.fail(ErrorCode.INVALID_LEAGUE_ID)

    # Keep request order, drop repeats
    unique_ids = list(dict.fromkeys(league_ids))

    applied = []
    errors = []

    try:
        # Serializes with submit/remove of the same user
        user = db.session.get(User, user_id, with_for_update=True)
        if not user:
            db.session.rollback()
            return ServiceResult.fail(ErrorCode.USER_NOT_FOUND)

        if Prediction.get_lock_type(user_id, race_id) is None:
            db.session.rollback()
            return ServiceResult.fail(ErrorCode.NO_PREDICTION_FOR_RACE)

        race = db.session.get(Race, race_id)
        if not race:
            db.session.rollback()
            return ServiceResult.fail(ErrorCode.RACE_NOT_FOUND)

        PredictionApplication.query.filter_by(user_id=user_id, race_id=race_id).delete()

        for league_id in unique_ids:
            error = _apply_to_league(user_id, race, league_id)
            if error:
                errors.append(error.to_dict())
            else:
                applied.append(league_id)

        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Applying prediction failed - SQL error: {e}")
        return ServiceResult.fail(ErrorCode.STORAGE_ERROR)

    logger.info(
        f"Prediction applied to {len(applied)} league(s): user {user_id} - race {race_id}"
    )

    return ServiceResult.ok(
        {"applied": applied, "applied_count": len(applied), "errors": errors},
        f"Prediction applied to {len(applied)} league(s)",
    )


def get_user_prediction(user_id, race_id, now=None):
    """The user's own prediction for a race with the leagues it is entered in"""
    race = db.session.get(Race, race_id)
    if not race:
        return ServiceResult.fail(ErrorCode.RACE_NOT_FOUND)

    picks = Prediction.get_set(user_id, race_id)
    if not picks:
        return ServiceResult.fail(ErrorCode.PREDICTION_NOT_FOUND)

    applications = PredictionApplication.query.filter_by(
        user_id=user_id, race_id=race_id
    ).all()

    lock_type = picks[0].lock_type
    return ServiceResult.ok(
        {
            "race": race.to_dict(),
            "predictions": [pick.to_dict() for pick in picks],
            "applied_leagues": [a.to_dict() for a in applications],
            "lock_type": lock_type,
            "max_points_per_driver": picks[0].max_points_per_driver,
            "can_edit": (
                not race.is_completed
                and not race.has_started(now)
                and can_edit(race, lock_type, now)
            ),
        }
    )


def get_user_predictions(user_id):
    """One summary row per race the user has predicted, latest race first"""
    rows = (
        db.session.query(
            Prediction.race_id,
            Prediction.lock_type,
            Prediction.max_points_per_driver,
            db.func.max(Prediction.updated_at).label("updated_at"),
        )
        .filter(Prediction.user_id == user_id)
        .group_by(
            Prediction.race_id, Prediction.lock_type, Prediction.max_points_per_driver
        )
        .all()
    )

    races = {}
    if rows:
        races = {
            race.id: race
            for race in Race.query.filter(Race.id.in_([r.race_id for r in rows])).all()
        }

    summaries = []
    for row in sorted(rows, key=lambda r: races[r.race_id].race_date, reverse=True):
        race = races[row.race_id]
        summaries.append(
            {
                "race_id": race.id,
                "race_name": race.name,
                "round": race.round,
                "season": race.season,
                "race_date": race.race_date.isoformat(),
                "fp1_date": race.fp1_date.isoformat() if race.fp1_date else None,
                "qualifying_date": (
                    race.qualifying_date.isoformat() if race.qualifying_date else None
                ),
                "lock_type": row.lock_type,
                "max_points_per_driver": row.max_points_per_driver,
                "updated_at": row.updated_at.isoformat() if row.updated_at else None,
            }
        )

    return ServiceResult.ok(summaries)


def get_league_predictions(league_id, race_id, viewer_id=None, now=None):
    """
    Predictions entered into a league for a race.

    Hidden until the race starts: before that only the viewer's own entry is
    returned.
    """
    race = db.session.get(Race, race_id)
    if not race:
        return ServiceResult.fail(ErrorCode.RACE_NOT_FOUND)

    if not db.session.get(League, league_id):
        return ServiceResult.fail(ErrorCode.LEAGUE_NOT_FOUND)

    revealed = race.is_completed or race.has_started(now)

    query = (
        db.session.query(Prediction)
        .join(
            PredictionApplication,
            db.and_(
                PredictionApplication.race_id == Prediction.race_id,
                PredictionApplication.user_id == Prediction.user_id,
            ),
        )
        .filter(
            PredictionApplication.league_id == league_id,
            Prediction.race_id == race_id,
        )
    )

    if not revealed:
        if viewer_id is None:
            return ServiceResult.ok(
                [], "Predictions will be revealed when the race starts"
            )
        query = query.filter(Prediction.user_id == viewer_id)

    picks = query.order_by(Prediction.user_id, Prediction.predicted_position).all()

    by_user = {}
    for pick in picks:
        entry = by_user.setdefault(
            pick.user_id,
            {
                "user_id": pick.user_id,
                "display_name": pick.user.full_name if pick.user else None,
                "lock_type": pick.lock_type,
                "max_points_per_driver": pick.max_points_per_driver,
                "predictions": [],
            },
        )
        entry["predictions"].append(pick.to_dict())

    return ServiceResult.ok(list(by_user.values()))
