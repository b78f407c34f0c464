from datetime import datetime, timedelta

from conftest import picks

from podium import db
from podium.models import LeagueMember, Score
from podium.services.prediction_service import apply_to_leagues, submit_prediction
from podium.utils.errors import ErrorCode
from podium.utils.scoring import score_race
from podium.utils.standings import league_standings, race_standings


def enter(user, race, league, selections, lock_type="race"):
    submit_prediction(user.id, race.id, picks(*selections), lock_type)
    apply_to_leagues(user.id, race.id, [league.id])


def test_league_standings_sum_races(factory):
    alice = factory.user(display_name="Alice")
    bob = factory.user(display_name="Bob")
    first, second = factory.weekend(), factory.race(race=timedelta(days=10))
    d1, d2 = factory.driver(), factory.driver()
    league = factory.league(alice, races=[first, second], members=[alice, bob])

    enter(alice, first, league, [(d1, 1)])
    enter(bob, first, league, [(d1, 3)])
    enter(alice, second, league, [(d2, 1)])
    factory.results(first, {d1: 1})
    factory.results(second, {d2: 2})
    score_race(first.id)
    score_race(second.id)

    result = league_standings(league.id)

    assert result.success
    assert [
        (row["position"], row["display_name"], row["total_points"], row["races_played"])
        for row in result.data
    ] == [(1, "Alice", 19, 2), (2, "Bob", 8, 1)]


def test_members_without_scores_listed_with_zero(factory):
    alice = factory.user()
    bob = factory.user()
    race = factory.weekend()
    driver = factory.driver()
    league = factory.league(alice, races=[race], members=[alice, bob])
    enter(alice, race, league, [(driver, 1)])
    factory.results(race, {driver: 4})
    score_race(race.id)

    rows = league_standings(league.id).data

    assert [(row["user_id"], row["total_points"]) for row in rows] == [
        (alice.id, 7),
        (bob.id, 0),
    ]


def test_tie_broken_by_join_date_then_user_id(factory):
    owner = factory.user()
    early = factory.user()
    late = factory.user()
    race = factory.weekend()
    driver = factory.driver()
    league = factory.league(owner, races=[race])
    for user, joined in (
        (owner, datetime(2025, 3, 1)),
        (late, datetime(2025, 2, 1)),
        (early, datetime(2025, 1, 1)),
    ):
        db.session.add(
            LeagueMember(
                league_id=league.id,
                user_id=user.id,
                status=LeagueMember.STATUS_ACTIVE,
                joined_at=joined,
            )
        )
    db.session.commit()

    for user in (owner, early, late):
        enter(user, race, league, [(driver, 1)])
    factory.results(race, {driver: 1})
    score_race(race.id)

    league_rows = league_standings(league.id).data
    race_rows = race_standings(league.id, race.id).data

    expected = [early.id, late.id, owner.id]
    assert [row["user_id"] for row in league_rows] == expected
    assert [row["user_id"] for row in race_rows] == expected
    assert [row["position"] for row in race_rows] == [1, 2, 3]


def test_race_standings_include_tier(factory):
    early = factory.user()
    late = factory.user()
    race = factory.weekend()
    driver = factory.driver()
    league = factory.league(early, races=[race], members=[early, late])
    enter(early, race, league, [(driver, 1)], "fp1")
    enter(late, race, league, [(driver, 1)], "qualifying")
    factory.results(race, {driver: 1})
    score_race(race.id)

    rows = race_standings(league.id, race.id).data

    assert [
        (row["user_id"], row["points"], row["lock_type"], row["max_points_per_driver"])
        for row in rows
    ] == [(early.id, 20, "fp1", 20), (late.id, 15, "qualifying", 15)]


def test_standings_follow_latest_scoring(factory):
    user = factory.user()
    race = factory.weekend()
    driver = factory.driver()
    league = factory.league(user, races=[race], members=[user])
    enter(user, race, league, [(driver, 1)])
    factory.results(race, {driver: 3})
    score_race(race.id)
    assert league_standings(league.id).data[0]["total_points"] == 8

    race.results.first().position = 1
    db.session.commit()
    score_race(race.id)

    assert league_standings(league.id).data[0]["total_points"] == 10
    assert race_standings(league.id, race.id).data[0]["points"] == 10


def test_scores_without_membership_sort_last(factory):
    member = factory.user()
    former = factory.user()
    race = factory.weekend()
    league = factory.league(member, races=[race], members=[member])
    db.session.add(Score(league_id=league.id, race_id=race.id, user_id=former.id, points=0))
    db.session.commit()

    rows = league_standings(league.id).data

    assert [row["user_id"] for row in rows] == [member.id, former.id]


def test_unknown_league_or_race(factory):
    user = factory.user()
    league = factory.league(user)

    assert league_standings(999).code is ErrorCode.LEAGUE_NOT_FOUND
    assert race_standings(999, 1).code is ErrorCode.LEAGUE_NOT_FOUND
    assert race_standings(league.id, 999).code is ErrorCode.RACE_NOT_FOUND
