from datetime import datetime, timezone

from podium import db


class Race(db.Model):
    __tablename__ = "races"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    location = db.Column(db.String(100))
    circuit_name = db.Column(db.String(100))

    # Race identification
    season = db.Column(db.Integer, nullable=False)
    round = db.Column(db.Integer, nullable=False)

    # Lock deadlines, earliest first. fp1/qualifying are optional.
    fp1_date = db.Column(db.DateTime)
    qualifying_date = db.Column(db.DateTime)
    race_date = db.Column(db.DateTime, nullable=False)

    # Set when the official classification is recorded
    is_completed = db.Column(db.Boolean, default=False, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    predictions = db.relationship(
        "Prediction", backref="race", lazy="dynamic", cascade="all, delete-orphan"
    )
    results = db.relationship(
        "RaceResult", backref="race", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("season", "round", name="unique_race_season_round"),
        db.Index("idx_race_date", "race_date"),
        db.Index("idx_race_completed", "is_completed"),
        db.CheckConstraint(
            "fp1_date IS NULL OR qualifying_date IS NULL OR fp1_date <= qualifying_date",
            name="fp1_before_qualifying",
        ),
        db.CheckConstraint(
            "qualifying_date IS NULL OR qualifying_date <= race_date",
            name="qualifying_before_race",
        ),
        db.CheckConstraint(
            "fp1_date IS NULL OR fp1_date <= race_date", name="fp1_before_race"
        ),
    )

    def __repr__(self):
        return f"<Race {self.season} R{self.round} {self.name}>"

    def has_valid_schedule(self):
        """Check fp1 <= qualifying <= race for the deadlines that are set"""
        from podium.utils.timezone_utils import ensure_utc

        deadlines = [
            ensure_utc(d)
            for d in (self.fp1_date, self.qualifying_date, self.race_date)
            if d is not None
        ]
        return all(a <= b for a, b in zip(deadlines, deadlines[1:]))

    def has_started(self, now=None):
        """Check if the race has started (final deadline passed)"""
        from podium.utils.timezone_utils import ensure_utc, get_utc_time

        if not self.race_date:
            return False
        now = ensure_utc(now) if now else get_utc_time()
        return now >= ensure_utc(self.race_date)

    def is_linked_to_league(self, league_id):
        """Check if this race is part of a league"""
        from .league_race import LeagueRace

        return (
            LeagueRace.query.filter_by(league_id=league_id, race_id=self.id).first()
            is not None
        )

    def get_actual_positions(self):
        """Official classification as {driver_id: position}"""
        return {result.driver_id: result.position for result in self.results.all()}

    @staticmethod
    def get_upcoming(limit=24):
        """Races without official results, soonest first"""
        return (
            Race.query.filter_by(is_completed=False)
            .order_by(Race.race_date)
            .limit(limit)
            .all()
        )

    def to_dict(self):
        """Convert race to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "circuit_name": self.circuit_name,
            "season": self.season,
            "round": self.round,
            "fp1_date": self.fp1_date.isoformat() if self.fp1_date else None,
            "qualifying_date": (
                self.qualifying_date.isoformat() if self.qualifying_date else None
            ),
            "race_date": self.race_date.isoformat() if self.race_date else None,
            "is_completed": self.is_completed,
            "status": self.status,
        }

    @property
    def status(self):
        """Get race status as string"""
        if self.is_completed:
            return "completed"
        if self.has_started():
            return "in_progress"
        return "scheduled"
