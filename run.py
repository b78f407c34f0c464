import os

from podium import create_app, db
from podium.models import Driver, League, Prediction, Race, RaceResult, Score, User

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Driver": Driver,
        "Race": Race,
        "RaceResult": RaceResult,
        "League": League,
        "Prediction": Prediction,
        "Score": Score,
    }


if __name__ == "__main__":
    app.run(
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 5000)),
        debug=app.config.get("DEBUG", False),
    )
