import os
from datetime import timedelta

os.environ["FLASK_CONFIG"] = "testing"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from flask import g  # noqa: E402

from podium import create_app, db  # noqa: E402
from podium.models import (  # noqa: E402
    Driver,
    League,
    LeagueMember,
    Race,
    RaceResult,
    User,
)
from podium.utils.timezone_utils import get_utc_time, to_storage  # noqa: E402


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def now():
    return get_utc_time()


class Factory:
    """Builds and commits model rows for tests"""

    def __init__(self, now):
        self.now = now
        self._counter = 0

    def _next(self):
        self._counter += 1
        return self._counter

    def user(self, username=None, display_name=None, is_admin=False):
        user = User(
            username=username or f"user{self._next()}",
            display_name=display_name,
            is_admin=is_admin,
        )
        db.session.add(user)
        db.session.commit()
        return user

    def driver(self, first_name="Test", last_name=None, code=None, is_active=True):
        driver = Driver(
            first_name=first_name,
            last_name=last_name or f"Driver{self._next()}",
            code=code,
            is_active=is_active,
        )
        db.session.add(driver)
        db.session.commit()
        return driver

    def race(self, fp1=None, qualifying=None, race=None, season=2025, name=None):
        """Race with deadlines given as offsets from now; None leaves fp1/qualifying unset"""
        number = self._next()
        new_race = Race(
            name=name or f"Grand Prix {number}",
            season=season,
            round=number,
            fp1_date=to_storage(self.now + fp1) if fp1 is not None else None,
            qualifying_date=(
                to_storage(self.now + qualifying) if qualifying is not None else None
            ),
            race_date=to_storage(
                self.now + (race if race is not None else timedelta(days=3))
            ),
        )
        db.session.add(new_race)
        db.session.commit()
        return new_race

    def weekend(self):
        """Race with all three deadlines in the future"""
        return self.race(
            fp1=timedelta(days=1), qualifying=timedelta(days=2), race=timedelta(days=3)
        )

    def league(
        self,
        owner,
        races=(),
        members=(),
        is_public=False,
        requires_approval=False,
        max_members=None,
        name=None,
    ):
        league = League(
            name=name or f"League {self._next()}",
            owner_id=owner.id,
            is_public=is_public,
            requires_approval=requires_approval,
            max_members=max_members,
        )
        db.session.add(league)
        db.session.flush()
        for race in races:
            league.link_race(race.id)
        for member in members:
            db.session.add(
                LeagueMember(
                    league_id=league.id,
                    user_id=member.id,
                    status=LeagueMember.STATUS_ACTIVE,
                )
            )
        db.session.commit()
        return league

    def results(self, race, positions):
        """positions: {driver: finishing position}"""
        for driver, position in positions.items():
            db.session.add(
                RaceResult(race_id=race.id, driver_id=driver.id, position=position)
            )
        db.session.commit()


@pytest.fixture
def factory(app, now):
    return Factory(now)


def login(client, user):
    with client.session_transaction() as sess:
        sess["_user_id"] = str(user.id)
        sess["_fresh"] = True
    # Requests share the fixture's app context, where current_user is cached
    g.pop("_login_user", None)


def picks(*pairs):
    """picks((driver, position), ...) -> request payload"""
    return [{"driver_id": driver.id, "position": position} for driver, position in pairs]
