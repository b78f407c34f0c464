import pytest
from conftest import Factory, picks

from config import TestingConfig, config
from podium import create_app, db
from podium.models import Score
from podium.services.prediction_service import apply_to_leagues, submit_prediction
from podium.services.results_service import record_race_results
from podium.utils.cache_utils import cache_is_shared
from podium.utils.standings import league_standings
from podium.utils.timezone_utils import get_utc_time


@pytest.fixture
def shared_config(tmp_path, monkeypatch):
    """Config name for apps sharing one database file and one cache directory"""

    class SharedConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'podium.db'}"
        CACHE_TYPE = "FileSystemCache"
        CACHE_DIR = str(tmp_path / "cache")

    monkeypatch.setitem(config, "shared", SharedConfig)
    return "shared"


def test_results_from_another_process_refresh_standings(shared_config):
    web = create_app(shared_config)
    worker = create_app(shared_config)

    with web.app_context():
        factory = Factory(get_utc_time())
        user = factory.user()
        race = factory.weekend()
        driver = factory.driver()
        league = factory.league(user, races=[race], members=[user])
        submit_prediction(user.id, race.id, picks((driver, 1)))
        apply_to_leagues(user.id, race.id, [league.id])
        league_id, race_id, driver_id = league.id, race.id, driver.id

        assert cache_is_shared()
        assert league_standings(league_id).data[0]["total_points"] == 0

    with worker.app_context():
        recorded = record_race_results(
            race_id, [{"driver_id": driver_id, "position": 1}]
        )
        assert recorded.success

    with web.app_context():
        assert league_standings(league_id).data[0]["total_points"] == 10


def test_process_local_cache_is_bypassed(factory):
    user = factory.user()
    race = factory.weekend()
    league = factory.league(user, races=[race], members=[user])

    assert not cache_is_shared()
    assert league_standings(league.id).data[0]["total_points"] == 0

    # Written without invalidating, as another process would
    db.session.add(Score(league_id=league.id, race_id=race.id, user_id=user.id, points=7))
    db.session.commit()

    assert league_standings(league.id).data[0]["total_points"] == 7


@pytest.mark.parametrize(
    "cache_type, shared",
    [
        ("SimpleCache", False),
        ("NullCache", False),
        ("flask_caching.backends.simplecache.SimpleCache", False),
        ("FileSystemCache", True),
        ("RedisCache", True),
    ],
)
def test_cache_is_shared_by_backend(app, cache_type, shared):
    app.config["CACHE_TYPE"] = cache_type

    assert cache_is_shared() is shared
