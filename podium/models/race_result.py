from datetime import datetime, timezone

from podium import db


class RaceResult(db.Model):
    """Official finishing position of one driver. Non-finishers have no row."""

    __tablename__ = "race_results"

    id = db.Column(db.Integer, primary_key=True)
    race_id = db.Column(
        db.Integer, db.ForeignKey("races.id", ondelete="CASCADE"), nullable=False
    )
    driver_id = db.Column(
        db.Integer, db.ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False
    )
    position = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    driver = db.relationship("Driver")

    __table_args__ = (
        db.UniqueConstraint("race_id", "position", name="unique_race_position"),
        db.UniqueConstraint("race_id", "driver_id", name="unique_race_driver"),
        db.CheckConstraint("position >= 1", name="positive_result_position"),
    )

    def __repr__(self):
        return f"<RaceResult race_id={self.race_id} driver_id={self.driver_id} P{self.position}>"

    def to_dict(self):
        return {
            "driver_id": self.driver_id,
            "driver": self.driver.to_dict() if self.driver else None,
            "position": self.position,
        }
