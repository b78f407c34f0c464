from functools import wraps

from flask import abort, jsonify, request
from flask_login import current_user, login_required

from podium import limiter
from podium.routes.api import bp
from podium.services import prediction_service, results_service
from podium.utils.errors import ErrorKind
from podium.utils.scoring import ScoringEngine
from podium.utils.standings import league_standings, race_standings

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.STATE_CONFLICT: 409,
    ErrorKind.NOT_ELIGIBLE: 403,
    ErrorKind.INFRASTRUCTURE: 503,
}


def _respond(result, success_status=200):
    """Turn a ServiceResult into a JSON response"""
    if result:
        return jsonify(result.to_dict()), success_status
    return jsonify(result.to_dict()), STATUS_BY_KIND.get(result.kind, 400)


def _json_body():
    return request.get_json(silent=True) or {}


def admin_required(f):
    """Restrict an endpoint to admin users"""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            abort(403)
        return f(*args, **kwargs)

    return decorated_function


# Predictions


@bp.route("/predictions", methods=["POST"])
@login_required
@limiter.limit("60 per minute")
def submit_prediction():
    """Create or replace the current user's prediction for a race"""
    data = _json_body()
    race_id = data.get("race_id", data.get("raceId"))
    lock_type = data.get("lock_type", data.get("lockType"))
    picks = data.get("predictions", data.get("picks")) or []

    if not isinstance(race_id, int):
        return jsonify({"success": False, "message": "race_id is required"}), 400

    if not isinstance(picks, list):
        return jsonify({"success": False, "message": "predictions must be a list"}), 400

    result = prediction_service.submit_prediction(
        current_user.id, race_id, picks, lock_type
    )
    return _respond(result, 201)


@bp.route("/predictions/race/<int:race_id>", methods=["DELETE"])
@login_required
def delete_prediction(race_id):
    result = prediction_service.remove_prediction(current_user.id, race_id)
    return _respond(result)


@bp.route("/predictions/race/<int:race_id>")
@login_required
def my_prediction_for_race(race_id):
    result = prediction_service.get_user_prediction(current_user.id, race_id)
    return _respond(result)


@bp.route("/predictions/me")
@login_required
def my_predictions():
    return _respond(prediction_service.get_user_predictions(current_user.id))


@bp.route("/predictions/apply", methods=["POST"])
@login_required
@limiter.limit("60 per minute")
def apply_prediction():
    """Enter the current user's prediction into leagues"""
    data = _json_body()
    race_id = data.get("race_id", data.get("raceId"))
    league_ids = data.get("league_ids", data.get("leagueIds")) or []

    if not isinstance(race_id, int):
        return jsonify({"success": False, "message": "race_id is required"}), 400

    if not isinstance(league_ids, list):
        return jsonify({"success": False, "message": "league_ids must be a list"}), 400

    result = prediction_service.apply_to_leagues(current_user.id, race_id, league_ids)
    return _respond(result)


@bp.route("/predictions/league/<int:league_id>/race/<int:race_id>")
@login_required
def league_predictions(league_id, race_id):
    result = prediction_service.get_league_predictions(
        league_id, race_id, viewer_id=current_user.id
    )
    return _respond(result)


# Rankings


@bp.route("/rankings/league/<int:league_id>")
def league_rankings(league_id):
    return _respond(league_standings(league_id))


@bp.route("/rankings/league/<int:league_id>/race/<int:race_id>")
def league_race_rankings(league_id, race_id):
    return _respond(race_standings(league_id, race_id))


# Races


@bp.route("/races/upcoming")
def upcoming_races():
    limit = request.args.get("limit", type=int)
    return _respond(results_service.get_upcoming_races(limit))


@bp.route("/races/drivers")
def drivers():
    return _respond(results_service.get_active_drivers())


# Admin


@bp.route("/admin/races/<int:race_id>/results", methods=["POST"])
@admin_required
def save_race_results(race_id):
    """Record the official classification and score the race"""
    data = _json_body()
    results = data.get("results") or []
    calculate = data.get("calculate", True)

    if not isinstance(results, list):
        return jsonify({"success": False, "message": "results must be a list"}), 400

    result = results_service.record_race_results(race_id, results, bool(calculate))
    return _respond(result)


@bp.route("/admin/races/<int:race_id>/calculate-scores", methods=["POST"])
@admin_required
def calculate_scores(race_id):
    return _respond(ScoringEngine().score_race(race_id))
