from podium import db  # noqa: F401 - imported for model imports

from .driver import Driver
from .league import League
from .league_member import LeagueMember
from .league_race import LeagueRace
from .prediction import Prediction
from .prediction_application import PredictionApplication
from .race import Race
from .race_result import RaceResult
from .score import Score
from .user import User

__all__ = [
    "User",
    "Driver",
    "Race",
    "RaceResult",
    "League",
    "LeagueMember",
    "LeagueRace",
    "Prediction",
    "PredictionApplication",
    "Score",
]
