from datetime import datetime, timezone

from podium import db


class Score(db.Model):
    """Points of one user for one race inside one league.

    Rewritten on every scoring run for the race, never incremented.
    """

    __tablename__ = "scores"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(
        db.Integer, db.ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False
    )
    race_id = db.Column(
        db.Integer, db.ForeignKey("races.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    points = db.Column(db.Integer, nullable=False, default=0)
    calculated_at = db.Column(
        db.DateTime, default=lambda: datetime.now(timezone.utc)
    )

    user = db.relationship("User")

    __table_args__ = (
        db.UniqueConstraint(
            "league_id", "race_id", "user_id", name="unique_league_race_user_score"
        ),
        db.Index("idx_score_league_user", "league_id", "user_id"),
        db.Index("idx_score_race", "race_id"),
    )

    def __repr__(self):
        return (
            f"<Score league_id={self.league_id} race_id={self.race_id} "
            f"user_id={self.user_id} points={self.points}>"
        )

    def to_dict(self):
        return {
            "league_id": self.league_id,
            "race_id": self.race_id,
            "user_id": self.user_id,
            "points": self.points,
            "calculated_at": (
                self.calculated_at.isoformat() if self.calculated_at else None
            ),
        }
