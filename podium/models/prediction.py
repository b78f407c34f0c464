from datetime import datetime, timezone

from podium import db


class Prediction(db.Model):
    """One predicted position for one driver.

    All rows of a (race, user) pair form that user's prediction set and share
    the same lock_type and max_points_per_driver. The ceiling is stored on the
    row so historical scoring does not depend on the current tier table.
    """

    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    race_id = db.Column(
        db.Integer, db.ForeignKey("races.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    driver_id = db.Column(
        db.Integer, db.ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False
    )
    predicted_position = db.Column(db.Integer, nullable=False)

    # fp1 | qualifying | race
    lock_type = db.Column(db.String(20), nullable=False, default="race")
    max_points_per_driver = db.Column(db.Integer, nullable=False, default=10)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    driver = db.relationship("Driver")

    __table_args__ = (
        db.UniqueConstraint(
            "race_id", "user_id", "predicted_position", name="unique_race_user_position"
        ),
        db.UniqueConstraint(
            "race_id", "user_id", "driver_id", name="unique_race_user_driver"
        ),
        db.Index("idx_prediction_race_user", "race_id", "user_id"),
        db.CheckConstraint("predicted_position >= 1", name="positive_position"),
    )

    def __repr__(self):
        return (
            f"<Prediction user_id={self.user_id} race_id={self.race_id} "
            f"driver_id={self.driver_id} P{self.predicted_position}>"
        )

    @staticmethod
    def get_set(user_id, race_id):
        """The user's prediction set for a race, ordered by position"""
        return (
            Prediction.query.filter_by(user_id=user_id, race_id=race_id)
            .order_by(Prediction.predicted_position)
            .all()
        )

    @staticmethod
    def get_lock_type(user_id, race_id):
        """Lock tier of an existing set, or None when the user has no set"""
        row = (
            db.session.query(Prediction.lock_type)
            .filter_by(user_id=user_id, race_id=race_id)
            .first()
        )
        return row.lock_type if row else None

    def to_dict(self):
        """Convert pick to dictionary for API responses"""
        return {
            "driver_id": self.driver_id,
            "driver": self.driver.to_dict() if self.driver else None,
            "predicted_position": self.predicted_position,
            "lock_type": self.lock_type,
            "max_points_per_driver": self.max_points_per_driver,
        }
