from datetime import timedelta

from conftest import picks

from podium import db
from podium.models import Race, RaceResult
from podium.services.prediction_service import apply_to_leagues, submit_prediction
from podium.services.results_service import (
    get_active_drivers,
    get_upcoming_races,
    record_race_results,
)
from podium.utils.errors import ErrorCode


def results_of(race):
    return sorted(
        (r.driver_id, r.position) for r in RaceResult.query.filter_by(race_id=race.id)
    )


def test_record_replaces_results_and_scores(factory):
    user = factory.user()
    race = factory.weekend()
    d1, d2, d3 = factory.driver(), factory.driver(), factory.driver()
    league = factory.league(user, races=[race], members=[user])
    submit_prediction(user.id, race.id, picks((d1, 1), (d2, 2)))
    apply_to_leagues(user.id, race.id, [league.id])

    record_race_results(
        race.id,
        [{"driver_id": d1.id, "position": 1}, {"driver_id": d3.id, "position": 2}],
        calculate=False,
    )
    result = record_race_results(
        race.id,
        [{"driver_id": d2.id, "position": 1}, {"driver_id": d1.id, "position": 2}],
    )

    assert result.success
    assert result.data["results_count"] == 2
    assert result.data["scoring"]["users_processed"] == 1
    assert results_of(race) == sorted([(d2.id, 1), (d1.id, 2)])
    assert db.session.get(Race, race.id).is_completed


def test_record_without_scoring(factory):
    race = factory.weekend()
    driver = factory.driver()

    result = record_race_results(
        race.id, [{"driver_id": driver.id, "position": 1}], calculate=False
    )

    assert result.success
    assert "scoring" not in result.data
    assert db.session.get(Race, race.id).is_completed


def test_record_validation(factory):
    race = factory.weekend()
    d1, d2 = factory.driver(), factory.driver()

    assert record_race_results(999, [{"driver_id": d1.id, "position": 1}]).code is (
        ErrorCode.RACE_NOT_FOUND
    )
    assert record_race_results(race.id, []).code is ErrorCode.EMPTY_RESULTS
    assert record_race_results(
        race.id, [{"driver_id": d1.id, "position": 0}]
    ).code is ErrorCode.INVALID_POSITION
    assert record_race_results(
        race.id,
        [{"driver_id": d1.id, "position": 1}, {"driver_id": d2.id, "position": 1}],
    ).code is ErrorCode.DUPLICATE_POSITION_OR_DRIVER
    assert record_race_results(
        race.id, [{"driver_id": 999, "position": 1}]
    ).code is ErrorCode.DRIVER_NOT_FOUND
    assert record_race_results(
        race.id, [{"driver_id": str(d1.id), "position": 1}]
    ).code is ErrorCode.INVALID_DRIVER_ID
    assert results_of(race) == []
    assert not db.session.get(Race, race.id).is_completed


def test_upcoming_races_soonest_first(factory):
    later = factory.race(race=timedelta(days=20))
    sooner = factory.race(race=timedelta(days=5))
    done = factory.race(race=timedelta(days=1))
    done.is_completed = True
    db.session.commit()

    result = get_upcoming_races()

    assert [race["id"] for race in result.data] == [sooner.id, later.id]
    assert [race["id"] for race in get_upcoming_races(1).data] == [sooner.id]


def test_active_drivers_only(factory):
    active = factory.driver(last_name="Active")
    factory.driver(last_name="Retired", is_active=False)

    result = get_active_drivers()

    assert [driver["id"] for driver in result.data] == [active.id]
