# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/azwork/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates default departments, a grant, and default users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role, department, and active status.
# - python -m flask users create --username jdoe --password "Password123!" --role staff --department finance
#   Create a user (prompts if options are omitted).
#
# Budget inspection/bootstrap:
# - python -m flask budgets visible --username jdoe [--fiscal-year 2025]
#   Print the budgets the visibility resolver returns for a user.
# - python -m flask budgets create --name "Workforce Admin" --type Admin --grant-code WIOA --department finance --fiscal-year-start 2024-07-01 --fiscal-year-end 2025-06-30
#   Create a budget (Staff budgets also need --owner <username>).

import click
from datetime import date
from flask.cli import with_appcontext

from .extensions import db
from .models import Department, Grant, User
from .permissions import VALID_ROLES, ROLE_STAFF, ROLE_DIRECTOR, ROLE_ADMINISTRATOR, ROLE_KIOSK, BudgetType
from .services.auth_service import create_user, PasswordValidationError
from .services import budget_service, permission_service
from .validation import ValidationError


DEFAULT_DEPARTMENTS = [
    ("Finance", "finance"),
    ("Workforce Services", "workforce"),
    ("Business Services", "business"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize departments, a default grant, and default users.

    Creates:
    - Departments: Finance, Workforce Services, Business Services
    - Grant: WIOA (default)
    - Users: director, administrator, finance, staff, kiosk
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing Arizona@Work budget system...")

    departments = {}
    for name, slug in DEFAULT_DEPARTMENTS:
        department = db.session.query(Department).filter_by(slug=slug).first()
        if not department:
            department = Department(name=name, slug=slug)
            db.session.add(department)
            db.session.commit()
            click.echo(f"PASS Created department: {name} ({slug})")
        departments[slug] = department

    grant = db.session.query(Grant).filter_by(grant_code="WIOA").first()
    if not grant:
        grant = Grant(name="WIOA", grant_code="WIOA", start_date=date(2024, 7, 1), end_date=date(2025, 6, 30))
        db.session.add(grant)
        db.session.commit()
        click.echo(f"PASS Created grant: {grant.name}")

    click.echo("\nUSERS Creating default users...")
    default_password = "Password123!"

    default_users = [
        ("director", ROLE_DIRECTOR, "workforce"),
        ("administrator", ROLE_ADMINISTRATOR, None),
        ("finance", ROLE_STAFF, "finance"),
        ("staff", ROLE_STAFF, "workforce"),
        ("kiosk", ROLE_KIOSK, None),
    ]

    for username, role, dept_slug in default_users:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"SKIP User '{username}' already exists")
            continue
        department_id = departments[dept_slug].id if dept_slug else None
        create_user(username, default_password, role=role, department_id=department_id)
        click.echo(f"PASS Created user: {username} (role: {role})")

    click.echo("\nPASS System initialization complete!")
    click.echo(f"SECURITY Default password for all users: {default_password}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(VALID_ROLES), prompt=True, help='Role')
@click.option('--department', 'department_slug', default=None, help='Department slug (e.g. finance)')
@click.option('--full-name', default=None, help='Display name')
@with_appcontext
def create_user_cli(username, password, role, department_slug, full_name):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        department_id = None
        if department_slug:
            department = db.session.query(Department).filter_by(slug=department_slug).first()
            if not department:
                click.echo(f"FAIL Department '{department_slug}' not found")
                return
            department_id = department.id

        user = create_user(
            username,
            password,
            role=role,
            department_id=department_id,
            full_name=full_name,
        )
        click.echo(f"PASS Created user: {user.username} with role '{user.role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role and department."""
    users = db.session.query(User).order_by(User.username.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<15} {'Department':<25} {'Finance':<8} {'Active'}")
    click.echo("="*90)

    for user in users:
        actor = permission_service.build_actor(user)
        department = user.department.name if user.department else "-"
        finance = "yes" if actor.is_finance else "no"
        active = "yes" if user.is_active else "no"
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<15} {department:<25} {finance:<8} {active}")


@click.group('budgets')
def budgets_group():
    """Budget inspection commands."""


@budgets_group.command('visible')
@click.option('--username', required=True, help='User to resolve budgets for')
@click.option('--fiscal-year', default=None, help='YYYY or YYYY-MM-DD')
@with_appcontext
def visible_budgets(username, fiscal_year):
    """Print the budgets a user can see."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    actor = permission_service.load_actor(user.id)
    if actor is None:
        click.echo(f"FAIL User '{username}' is inactive or has no usable role")
        return

    try:
        filters = budget_service.parse_budget_filters({"fiscal_year": fiscal_year})
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        return

    budgets = budget_service.resolve_visible_budgets(actor, filters)
    click.echo(f"User {username} (role={actor.role}, finance={actor.is_finance}): {len(budgets)} budget(s)")
    for budget in budgets:
        click.echo(f"  {budget.id:<5} {budget.budget_type:<6} owner={budget.user_id} {budget.name}")


@budgets_group.command('create')
@click.option('--name', required=True, help='Budget name')
@click.option('--type', 'budget_type', type=click.Choice(BudgetType.ALL), required=True, help='Budget pool')
@click.option('--grant-code', required=True, help='Grant code (e.g. WIOA)')
@click.option('--department', 'department_slug', required=True, help='Department slug (e.g. workforce)')
@click.option('--owner', 'owner_username', default=None, help='Owning staff member (required for Staff budgets)')
@click.option('--fiscal-year-start', type=click.DateTime(formats=["%Y-%m-%d"]), required=True, help='YYYY-MM-DD')
@click.option('--fiscal-year-end', type=click.DateTime(formats=["%Y-%m-%d"]), required=True, help='YYYY-MM-DD')
@click.option('--notes', default=None, help='Free-text notes')
@with_appcontext
def create_budget_cli(name, budget_type, grant_code, department_slug, owner_username,
                      fiscal_year_start, fiscal_year_end, notes):
    """Create a Staff or Admin budget."""
    grant = db.session.query(Grant).filter_by(grant_code=grant_code).first()
    if not grant:
        click.echo(f"FAIL Grant '{grant_code}' not found")
        return

    department = db.session.query(Department).filter_by(slug=department_slug).first()
    if not department:
        click.echo(f"FAIL Department '{department_slug}' not found")
        return

    user_id = None
    if owner_username:
        owner = db.session.query(User).filter_by(username=owner_username).first()
        if not owner:
            click.echo(f"FAIL User '{owner_username}' not found")
            return
        user_id = owner.id

    try:
        budget = budget_service.create_budget(
            name=name,
            budget_type=budget_type,
            grant_id=grant.id,
            department_id=department.id,
            fiscal_year_start=fiscal_year_start.date(),
            fiscal_year_end=fiscal_year_end.date(),
            user_id=user_id,
            notes=notes,
        )
    except ValidationError as e:
        click.echo(f"FAIL Failed to create budget: {e}")
        return

    click.echo(f"PASS Created {budget.budget_type} budget {budget.id}: {budget.name}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(budgets_group)
