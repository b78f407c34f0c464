from datetime import datetime, timezone

from podium import db


class PredictionApplication(db.Model):
    """A user's prediction set for a race, entered into one league"""

    __tablename__ = "prediction_applications"

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
    applied_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    league = db.relationship("League")

    __table_args__ = (
        db.UniqueConstraint(
            "league_id", "race_id", "user_id", name="unique_league_race_user_application"
        ),
        db.Index("idx_application_race_user", "race_id", "user_id"),
    )

    def __repr__(self):
        return (
            f"<PredictionApplication league_id={self.league_id} "
            f"race_id={self.race_id} user_id={self.user_id}>"
        )

    def to_dict(self):
        return {
            "league_id": self.league_id,
            "league_name": self.league.name if self.league else None,
            "race_id": self.race_id,
            "applied_at": self.applied_at.isoformat() if self.applied_at else None,
        }
