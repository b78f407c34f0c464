#!/usr/bin/env python3
"""
Podium Management CLI

This script provides command-line management functionality for the Podium application.
"""

import logging

import click
from flask.cli import with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from podium import create_app, db
from podium.models import Driver, League, LeagueMember, Race, Score, User
from podium.services.results_service import record_race_results
from podium.utils.cache_utils import invalidate_standings
from podium.utils.scoring import ScoringEngine
from podium.utils.standings import league_standings, race_standings
from podium.utils.timezone_utils import format_race_time, to_storage

app = create_app()

DATETIME_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d"]


def _parse_result(value):
    """Parse DRIVER_ID:POSITION"""
    try:
        driver_id, position = value.split(":")
        return {"driver_id": int(driver_id), "position": int(position)}
    except ValueError:
        raise click.BadParameter(f"'{value}' is not DRIVER_ID:POSITION")


@click.group()
def cli():
    """Podium Management CLI"""
    pass


# Race Management Commands
@cli.group()
def race():
    """Race management commands"""
    pass


@race.command("create")
@click.argument("name")
@click.option("--season", type=int, required=True, help="Season year")
@click.option("--round", "round_number", type=int, required=True, help="Round number")
@click.option(
    "--race-date",
    type=click.DateTime(formats=DATETIME_FORMATS),
    required=True,
    help="Race start, UTC (YYYY-MM-DD HH:MM)",
)
@click.option(
    "--fp1-date",
    type=click.DateTime(formats=DATETIME_FORMATS),
    help="FP1 start, UTC (YYYY-MM-DD HH:MM)",
)
@click.option(
    "--qualifying-date",
    type=click.DateTime(formats=DATETIME_FORMATS),
    help="Qualifying start, UTC (YYYY-MM-DD HH:MM)",
)
@click.option("--location", help="City / country")
@click.option("--circuit", help="Circuit name")
@with_appcontext
def create_race(
    name, season, round_number, race_date, fp1_date, qualifying_date, location, circuit
):
    """Create a race weekend"""
    new_race = Race(
        name=name,
        season=season,
        round=round_number,
        race_date=to_storage(race_date),
        fp1_date=to_storage(fp1_date),
        qualifying_date=to_storage(qualifying_date),
        location=location,
        circuit_name=circuit,
    )

    if not new_race.has_valid_schedule():
        click.echo("❌ Sessions must be in order: FP1 <= qualifying <= race")
        return

    try:
        db.session.add(new_race)
        db.session.commit()
        click.echo(f"✅ Created race {season} R{round_number} {name} (id {new_race.id})")
    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Round {round_number} of {season} already exists!")
        logging.error(f"Race creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating race: {str(e)}")
        logging.error(f"Race creation failed - SQL error: {e}")


@race.command("list")
@click.option("--season", type=int, help="Only races of this season")
@with_appcontext
def list_races(season):
    """List races"""
    query = Race.query
    if season:
        query = query.filter_by(season=season)
    races = query.order_by(Race.race_date).all()

    if not races:
        click.echo("No races found.")
        return

    click.echo("Races:")
    for r in races:
        status = "✅ Completed" if r.is_completed else "⏳ " + r.status.capitalize()
        click.echo(
            f"  [{r.id}] {r.season} R{r.round} {r.name} - "
            f"{format_race_time(r.race_date)} - {status}"
        )


@race.command("results")
@click.argument("race_id", type=int)
@click.option(
    "--result",
    "results",
    multiple=True,
    required=True,
    help="Finishing position as DRIVER_ID:POSITION (repeatable)",
)
@click.option("--no-score", is_flag=True, help="Store results without scoring")
@with_appcontext
def race_results(race_id, results, no_score):
    """Record the official classification of a race"""
    parsed = [_parse_result(value) for value in results]

    result = record_race_results(race_id, parsed, calculate=not no_score)
    if not result:
        click.echo(f"❌ {result.message}")
        return

    click.echo(f"✅ Recorded {result.data['results_count']} results for race {race_id}")
    scoring = result.data.get("scoring")
    if scoring:
        click.echo(
            f"🏁 Scored {scoring['users_processed']} entries "
            f"in {scoring['leagues_processed']} leagues"
        )


@race.command("score")
@click.argument("race_id", type=int)
@with_appcontext
def score(race_id):
    """(Re)calculate scores for a race"""
    result = ScoringEngine().score_race(race_id)
    if not result:
        click.echo(f"❌ {result.message}")
        return

    click.echo(
        f"🏁 Scored {result.data['users_processed']} entries "
        f"in {result.data['leagues_processed']} leagues"
    )


# Driver Commands
@cli.group()
def driver():
    """Driver management commands"""
    pass


@driver.command("create")
@click.argument("first_name")
@click.argument("last_name")
@click.option("--code", help="Three letter code, e.g. VER")
@click.option("--number", type=int, help="Car number")
@click.option("--inactive", is_flag=True, help="Create as not pickable")
@with_appcontext
def create_driver(first_name, last_name, code, number, inactive):
    """Create a driver"""
    try:
        new_driver = Driver(
            first_name=first_name,
            last_name=last_name,
            code=code.upper() if code else None,
            number=number,
            is_active=not inactive,
        )
        db.session.add(new_driver)
        db.session.commit()
        click.echo(f"✅ Created driver {new_driver.full_name} (id {new_driver.id})")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating driver: {str(e)}")
        logging.error(f"Driver creation failed - SQL error: {e}")


@driver.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include inactive drivers")
@with_appcontext
def list_drivers(show_all):
    """List drivers"""
    drivers = (
        Driver.query.order_by(Driver.last_name).all()
        if show_all
        else Driver.get_active()
    )

    if not drivers:
        click.echo("No drivers found.")
        return

    click.echo("Drivers:")
    for d in drivers:
        status = "" if d.is_active else " (inactive)"
        click.echo(f"  [{d.id}] {d.code or '---'} {d.full_name}{status}")


# League Commands
@cli.group()
def league():
    """League management commands"""
    pass


@league.command("create")
@click.argument("name")
@click.option("--owner", required=True, help="Owner username")
@click.option("--public", "is_public", is_flag=True, help="Listed publicly")
@click.option("--requires-approval", is_flag=True, help="Owner approves joins")
@click.option("--max-members", type=int, help="Member limit")
@click.option("--description", help="League description")
@with_appcontext
def create_league(name, owner, is_public, requires_approval, max_members, description):
    """Create a league; the owner becomes its first member"""
    owner_user = User.query.filter_by(username=owner).first()
    if not owner_user:
        click.echo(f"❌ User {owner} not found!")
        return

    try:
        new_league = League(
            name=name,
            description=description,
            is_public=is_public,
            requires_approval=requires_approval,
            max_members=max_members,
            owner_id=owner_user.id,
        )
        db.session.add(new_league)
        db.session.flush()
        new_league.add_member(owner_user.id)
        db.session.commit()
        click.echo(f"✅ Created league {name} (id {new_league.id})")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating league: {str(e)}")
        logging.error(f"League creation failed - SQL error: {e}")


@league.command("add-member")
@click.argument("league_id", type=int)
@click.argument("username")
@with_appcontext
def add_member(league_id, username):
    """Add a user to a league"""
    target_league = db.session.get(League, league_id)
    if not target_league:
        click.echo(f"❌ League {league_id} not found!")
        return

    member = User.query.filter_by(username=username).first()
    if not member:
        click.echo(f"❌ User {username} not found!")
        return

    try:
        membership, message = target_league.add_member(member.id)
        if membership is None:
            click.echo(f"❌ {message}")
            return
        db.session.commit()
        invalidate_standings(league_id)
        click.echo(f"✅ {message}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error adding member: {str(e)}")
        logging.error(f"Adding member failed - SQL error: {e}")


@league.command("link-race")
@click.argument("league_id", type=int)
@click.argument("race_id", type=int)
@with_appcontext
def link_race(league_id, race_id):
    """Make a race part of a league"""
    target_league = db.session.get(League, league_id)
    if not target_league:
        click.echo(f"❌ League {league_id} not found!")
        return

    if not db.session.get(Race, race_id):
        click.echo(f"❌ Race {race_id} not found!")
        return

    try:
        target_league.link_race(race_id)
        db.session.commit()
        click.echo(f"✅ Race {race_id} linked to league {target_league.name}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error linking race: {str(e)}")
        logging.error(f"Linking race failed - SQL error: {e}")


@league.command("standings")
@click.argument("league_id", type=int)
@with_appcontext
def standings(league_id):
    """Show league standings"""
    result = league_standings(league_id)
    if not result:
        click.echo(f"❌ {result.message}")
        return

    if not result.data:
        click.echo("No members yet.")
        return

    for row in result.data:
        click.echo(
            f"  {row['position']:>3}. {row['display_name']:<24} "
            f"{row['total_points']:>5} pts ({row['races_played']} races)"
        )


@league.command("race-standings")
@click.argument("league_id", type=int)
@click.argument("race_id", type=int)
@with_appcontext
def race_standings_cmd(league_id, race_id):
    """Show standings of one race in a league"""
    result = race_standings(league_id, race_id)
    if not result:
        click.echo(f"❌ {result.message}")
        return

    if not result.data:
        click.echo("No scores for this race yet.")
        return

    for row in result.data:
        click.echo(
            f"  {row['position']:>3}. {row['display_name']:<24} "
            f"{row['points']:>4} pts [{row['lock_type']}]"
        )


# User Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command("create")
@click.argument("username")
@click.option("--display-name", help="Display name")
@click.option("--admin", "is_admin", is_flag=True, help="Grant admin privileges")
@with_appcontext
def create_user(username, display_name, is_admin):
    """Create a user"""
    try:
        new_user = User(username=username, display_name=display_name, is_admin=is_admin)
        db.session.add(new_user)
        db.session.commit()
        role = "admin" if is_admin else "user"
        click.echo(f"✅ Created {role} {username} (id {new_user.id})")
    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ User {username} already exists!")
        logging.error(f"User creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating user: {str(e)}")
        logging.error(f"User creation failed - SQL error: {e}")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏎️  Podium Application Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    upcoming = Race.get_upcoming(limit=1)
    if upcoming:
        click.echo(
            f"✅ Next Race: {upcoming[0].name} ({format_race_time(upcoming[0].race_date)})"
        )
    else:
        click.echo("⚠️  Next Race: None scheduled")

    click.echo(f"👥 Users: {User.query.count()}")
    click.echo(f"🏆 Leagues: {League.query.count()}")
    click.echo(
        f"🤝 Active memberships: "
        f"{LeagueMember.query.filter_by(status=LeagueMember.STATUS_ACTIVE).count()}"
    )
    click.echo(f"🏎️  Active Drivers: {Driver.query.filter_by(is_active=True).count()}")

    race_count = Race.query.count()
    completed_count = Race.query.filter_by(is_completed=True).count()
    click.echo(f"🏁 Races: {completed_count}/{race_count} completed")
    click.echo(f"📊 Scores stored: {Score.query.count()}")


if __name__ == "__main__":
    with app.app_context():
        cli()
