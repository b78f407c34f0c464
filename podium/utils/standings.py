"""
League standings built from stored scores.

Ordering: points descending, then earlier league membership, then lower
user id. Users holding scores without a membership row sort after members
with the same points.
"""

from datetime import datetime

from sqlalchemy import func

from podium import db
from podium.models import League, LeagueMember, Prediction, Race, Score, User
from podium.utils.cache_utils import cached_query
from podium.utils.errors import ErrorCode, ServiceResult

# Sort key stand-in for users without a membership row
_NO_MEMBERSHIP = datetime.max


def _membership_join_dates(league_id):
    """{user_id: joined_at} for active members of a league"""
    rows = (
        db.session.query(LeagueMember.user_id, LeagueMember.joined_at)
        .filter(
            LeagueMember.league_id == league_id,
            LeagueMember.status == LeagueMember.STATUS_ACTIVE,
        )
        .all()
    )
    return {row.user_id: _naive(row.joined_at) for row in rows}


def _naive(dt):
    if dt is None:
        return _NO_MEMBERSHIP
    return dt.replace(tzinfo=None)


def _display_names(user_ids):
    if not user_ids:
        return {}
    users = User.query.filter(User.id.in_(user_ids)).all()
    return {user.id: user.full_name for user in users}


def _rank(rows, points_field, joined):
    rows.sort(
        key=lambda row: (
            -row[points_field],
            joined.get(row["user_id"], _NO_MEMBERSHIP),
            row["user_id"],
        )
    )
    for index, row in enumerate(rows):
        row["position"] = index + 1
    return rows


@cached_query()
def league_standings(league_id):
    """
    All-time standings of a league.

    Returns a ServiceResult whose data is a list of
    {position, user_id, display_name, total_points, races_played}.
    Active members without scores are listed with zero points.
    """
    league = db.session.get(League, league_id)
    if not league:
        return ServiceResult.fail(ErrorCode.LEAGUE_NOT_FOUND)

    totals = (
        db.session.query(
            Score.user_id,
            func.coalesce(func.sum(Score.points), 0).label("total_points"),
            func.count(func.distinct(Score.race_id)).label("races_played"),
        )
        .filter(Score.league_id == league_id)
        .group_by(Score.user_id)
        .all()
    )

    joined = _membership_join_dates(league_id)

    rows = {
        user_id: {"user_id": user_id, "total_points": 0, "races_played": 0}
        for user_id in joined
    }
    for row in totals:
        rows[row.user_id] = {
            "user_id": row.user_id,
            "total_points": int(row.total_points),
            "races_played": int(row.races_played),
        }

    names = _display_names(list(rows))
    for user_id, row in rows.items():
        row["display_name"] = names.get(user_id)

    return ServiceResult.ok(_rank(list(rows.values()), "total_points", joined))


@cached_query()
def race_standings(league_id, race_id):
    """
    Standings of a single race inside a league.

    Returns a ServiceResult whose data is a list of
    {position, user_id, display_name, points, lock_type, max_points_per_driver}
    for every user scored in that league and race.
    """
    league = db.session.get(League, league_id)
    if not league:
        return ServiceResult.fail(ErrorCode.LEAGUE_NOT_FOUND)

    race = db.session.get(Race, race_id)
    if not race:
        return ServiceResult.fail(ErrorCode.RACE_NOT_FOUND)

    scores = Score.query.filter_by(league_id=league_id, race_id=race_id).all()
    user_ids = [score.user_id for score in scores]

    # Lock tier each user played at, for display
    tiers = {}
    if user_ids:
        for row in (
            db.session.query(
                Prediction.user_id,
                Prediction.lock_type,
                Prediction.max_points_per_driver,
            )
            .filter(Prediction.race_id == race_id, Prediction.user_id.in_(user_ids))
            .distinct()
            .all()
        ):
            tiers[row.user_id] = (row.lock_type, row.max_points_per_driver)

    names = _display_names(user_ids)
    rows = []
    for score in scores:
        lock_type, max_points = tiers.get(score.user_id, (None, None))
        rows.append(
            {
                "user_id": score.user_id,
                "display_name": names.get(score.user_id),
                "points": score.points,
                "lock_type": lock_type,
                "max_points_per_driver": max_points,
            }
        )

    return ServiceResult.ok(
        _rank(rows, "points", _membership_join_dates(league_id))
    )
