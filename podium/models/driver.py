from datetime import datetime, timezone

from podium import db


class Driver(db.Model):
    __tablename__ = "drivers"

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    code = db.Column(db.String(3))  # e.g. VER, HAM
    number = db.Column(db.Integer)

    # Only active drivers can be picked in new predictions
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (db.Index("idx_driver_active", "is_active"),)

    def __repr__(self):
        return f"<Driver {self.code or self.last_name}>"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    @staticmethod
    def get_active():
        """Get active drivers ordered by surname"""
        return (
            Driver.query.filter_by(is_active=True)
            .order_by(Driver.last_name, Driver.first_name)
            .all()
        )

    def to_dict(self):
        """Convert driver to dictionary for API responses"""
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "code": self.code,
            "number": self.number,
            "is_active": self.is_active,
        }
