from datetime import datetime, timezone

from podium import db


class LeagueRace(db.Model):
    """Races that count towards a league"""

    __tablename__ = "league_races"

    id = db.Column(db.Integer, primary_key=True)
    league_id = db.Column(db.Integer, db.ForeignKey("leagues.id"), nullable=False)
    race_id = db.Column(db.Integer, db.ForeignKey("races.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    race = db.relationship("Race")

    __table_args__ = (
        db.UniqueConstraint("league_id", "race_id", name="unique_league_race"),
        db.Index("idx_league_races_race", "race_id"),
    )

    def __repr__(self):
        return f"<LeagueRace league_id={self.league_id} race_id={self.race_id}>"

    @staticmethod
    def get_league_ids_for_race(race_id):
        """Distinct leagues that include a race"""
        rows = (
            db.session.query(LeagueRace.league_id)
            .filter(LeagueRace.race_id == race_id)
            .distinct()
            .order_by(LeagueRace.league_id)
            .all()
        )
        return [row.league_id for row in rows]
