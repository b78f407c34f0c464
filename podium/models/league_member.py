from datetime import datetime, timezone

from podium import db


class LeagueMember(db.Model):
    __tablename__ = "league_members"

    STATUS_ACTIVE = "active"
    STATUS_PENDING = "pending"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)

    # active | pending (awaiting approval)
    status = db.Column(db.String(20), default=STATUS_ACTIVE, nullable=False)

    joined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("user_id", "league_id", name="unique_user_league"),
        db.Index("idx_league_members_status", "league_id", "status"),
        db.Index("idx_user_memberships", "user_id", "status"),
    )

    def __repr__(self):
        return f"<LeagueMember user_id={self.user_id} league_id={self.league_id}>"

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    def activate(self):
        """Activate a pending membership"""
        self.status = self.STATUS_ACTIVE
        self.joined_at = datetime.now(timezone.utc)

    def to_dict(self):
        """Convert membership to dictionary for API responses"""
        return {
            "user_id": self.user_id,
            "league_id": self.league_id,
            "username": self.user.username if self.user else None,
            "display_name": self.user.full_name if self.user else None,
            "status": self.status,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
