from datetime import datetime, timezone

from podium import db


class League(db.Model):
    __tablename__ = "leagues"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)

    # League settings
    is_public = db.Column(db.Boolean, default=False, nullable=False)
    requires_approval = db.Column(db.Boolean, default=False, nullable=False)
    max_members = db.Column(db.Integer)  # None = unlimited

    # Owner and timestamps
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    members = db.relationship(
        "LeagueMember", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )
    league_races = db.relationship(
        "LeagueRace", backref="league", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_league_owner", "owner_id"),
        db.Index("idx_league_public", "is_public"),
    )

    def __repr__(self):
        return f"<League {self.name}>"

    def get_member_count(self):
        """Get count of active members"""
        from .league_member import LeagueMember

        return self.members.filter_by(status=LeagueMember.STATUS_ACTIVE).count()

    def is_full(self):
        """Check if league has reached maximum capacity"""
        if not self.max_members:
            return False
        return self.get_member_count() >= self.max_members

    def is_user_member(self, user_id):
        """Check if user is an active member"""
        from .league_member import LeagueMember

        return (
            self.members.filter_by(
                user_id=user_id, status=LeagueMember.STATUS_ACTIVE
            ).first()
            is not None
        )

    def allows_auto_join(self):
        """Public leagues without approval accept members on first use"""
        return bool(self.is_public and not self.requires_approval)

    def add_member(self, user_id, status=None):
        """Add a user to the league, or activate an existing membership"""
        from .league_member import LeagueMember

        status = status or LeagueMember.STATUS_ACTIVE
        existing = self.members.filter_by(user_id=user_id).first()
        if existing:
            if existing.status == LeagueMember.STATUS_ACTIVE:
                return existing, "User is already a member"
            if self.is_full():
                return None, "League is full"
            existing.activate()
            return existing, "Membership activated"

        if self.is_full():
            return None, "League is full"

        membership = LeagueMember(league_id=self.id, user_id=user_id, status=status)
        db.session.add(membership)
        return membership, "User added successfully"

    def link_race(self, race_id):
        """Make a race part of this league"""
        from .league_race import LeagueRace

        existing = self.league_races.filter_by(race_id=race_id).first()
        if existing:
            return existing
        link = LeagueRace(league_id=self.id, race_id=race_id)
        db.session.add(link)
        return link

    def to_dict(self):
        """Convert league to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_public": self.is_public,
            "requires_approval": self.requires_approval,
            "member_count": self.get_member_count(),
            "max_members": self.max_members,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "owner": self.owner.username if self.owner else None,
        }
