from datetime import timedelta
from types import SimpleNamespace

import pytest

from conftest import picks

from podium import db
from podium.models import Race, Score
from podium.services.prediction_service import (
    apply_to_leagues,
    remove_prediction,
    submit_prediction,
)
from podium.services.results_service import record_race_results
from podium.utils.errors import ErrorCode
from podium.utils.scoring import ScoringEngine, calculate_pick_points, score_race


def pick(driver_id, position, ceiling=10):
    return SimpleNamespace(
        driver_id=driver_id, predicted_position=position, max_points_per_driver=ceiling
    )


class TestPointsFormula:
    @pytest.mark.parametrize(
        "predicted,actual,ceiling,expected",
        [
            (1, 1, 10, 10),
            (2, 5, 10, 7),
            (1, 20, 10, 0),
            (3, 1, 20, 18),
            (4, 4, 15, 15),
        ],
    )
    def test_pick_points(self, predicted, actual, ceiling, expected):
        assert calculate_pick_points(predicted, actual, ceiling) == expected

    def test_missing_driver_scores_zero(self):
        engine = ScoringEngine()
        assert engine.calculate_prediction_points([pick(7, 1), pick(42, 2)], {7: 1}) == 10

    def test_each_pick_uses_its_stored_ceiling(self):
        engine = ScoringEngine({"fp1": 1, "qualifying": 1, "race": 1})
        total = engine.calculate_prediction_points(
            [pick(1, 1, ceiling=20), pick(2, 2, ceiling=15)], {1: 1, 2: 3}
        )
        assert total == 20 + 14

    def test_default_ceilings(self, app):
        engine = ScoringEngine()
        assert engine.ceiling_for("fp1") == 20
        assert engine.ceiling_for("qualifying") == 15
        assert engine.ceiling_for("race") == 10

    def test_ceilings_from_config(self, app):
        app.config["LOCK_TIER_POINTS"] = {"fp1": 25, "qualifying": 18, "race": 12}
        assert ScoringEngine().ceiling_for("qualifying") == 18


@pytest.fixture
def scored_race(factory):
    """One user, one league, race-tier picks: driver 7 -> P1, driver 3 -> P2"""
    user = factory.user()
    race = factory.race(race=timedelta(hours=1))
    seven, three = factory.driver(), factory.driver()
    league = factory.league(user, races=[race], members=[user])
    submit_prediction(user.id, race.id, picks((seven, 1), (three, 2)), "race")
    apply_to_leagues(user.id, race.id, [league.id])
    return SimpleNamespace(
        user=user, race=race, league=league, seven=seven, three=three
    )


def stored_points(league, race, user):
    return (
        Score.query.filter_by(league_id=league.id, race_id=race.id, user_id=user.id)
        .one()
        .points
    )


class TestScoreRace:
    def test_scenario_seventeen_points(self, factory, scored_race):
        s = scored_race
        factory.results(s.race, {s.seven: 1, s.three: 5})

        result = score_race(s.race.id)

        assert result.success
        assert result.data == {
            "races_processed": 1,
            "leagues_processed": 1,
            "users_processed": 1,
        }
        assert stored_points(s.league, s.race, s.user) == 17

    def test_rescore_after_correction_overwrites(self, scored_race):
        s = scored_race
        record_race_results(
            s.race.id,
            [
                {"driver_id": s.seven.id, "position": 1},
                {"driver_id": s.three.id, "position": 5},
            ],
        )
        assert stored_points(s.league, s.race, s.user) == 17

        record_race_results(
            s.race.id,
            [
                {"driver_id": s.seven.id, "position": 1},
                {"driver_id": s.three.id, "position": 2},
            ],
        )

        assert stored_points(s.league, s.race, s.user) == 19
        assert Score.query.count() == 1

    def test_idempotent(self, factory, scored_race):
        s = scored_race
        factory.results(s.race, {s.seven: 1, s.three: 5})

        score_race(s.race.id)
        first = [(sc.league_id, sc.user_id, sc.points) for sc in Score.query.all()]
        score_race(s.race.id)
        second = [(sc.league_id, sc.user_id, sc.points) for sc in Score.query.all()]

        assert first == second

    def test_same_set_scored_in_every_applied_league(self, factory, scored_race):
        s = scored_race
        other = factory.league(s.user, races=[s.race], members=[s.user])
        apply_to_leagues(s.user.id, s.race.id, [s.league.id, other.id])
        factory.results(s.race, {s.seven: 1, s.three: 2})

        result = score_race(s.race.id)

        assert result.data["leagues_processed"] == 2
        assert stored_points(s.league, s.race, s.user) == 20
        assert stored_points(other, s.race, s.user) == 20

    def test_early_tier_earns_higher_ceiling(self, factory):
        early, late = factory.user(), factory.user()
        race = factory.weekend()
        driver = factory.driver()
        league = factory.league(early, races=[race], members=[early, late])
        submit_prediction(early.id, race.id, picks((driver, 2)), "fp1")
        submit_prediction(late.id, race.id, picks((driver, 2)), "race")
        for user in (early, late):
            apply_to_leagues(user.id, race.id, [league.id])
        factory.results(race, {driver: 1})

        score_race(race.id)

        assert stored_points(league, race, early) == 19
        assert stored_points(league, race, late) == 9

    def test_marks_race_completed(self, factory, scored_race):
        s = scored_race
        factory.results(s.race, {s.seven: 1})

        score_race(s.race.id)

        assert db.session.get(Race, s.race.id).is_completed

    def test_withdrawn_application_score_removed(self, factory, scored_race):
        s = scored_race
        factory.results(s.race, {s.seven: 1, s.three: 2})
        score_race(s.race.id)
        assert Score.query.count() == 1

        # Entry withdrawn before the deadline, then the race is re-scored
        remove_prediction(s.user.id, s.race.id, now=factory.now)
        score_race(s.race.id)

        assert Score.query.count() == 0

    def test_errors(self, factory):
        race = factory.weekend()

        assert score_race(999).code is ErrorCode.RACE_NOT_FOUND
        assert score_race(race.id).code is ErrorCode.NO_RESULTS_RECORDED
