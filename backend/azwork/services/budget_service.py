# Overview: Service-layer operations for budgets; resolves which budgets an actor can see.

"""
Budget Visibility Resolver

Every budget listing and every "may this actor look at budget X" check goes
through resolve_visible_budgets(), so the scoping rules live in one query:

- administrator, director: every budget
- staff in the Finance department: every Staff and Admin budget
- other staff: only Staff budgets they own
- kiosk or unknown role: nothing

Filters narrow the result for every role; they never widen it. Soft-deleted
budgets are never returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Budget, Department, Grant, User
from ..permissions import ActorContext, BudgetType
from ..permissions.roles import OVERSIGHT_ROLES
from ..validation import NotFoundError, ValidationError, parse_positive_int
from azwork.time_utils import parse_iso_date


class BudgetNotFoundError(NotFoundError):
    """Raised when a budget is missing or soft-deleted."""
    pass


@dataclass(frozen=True)
class BudgetFilters:
    fiscal_year: int | None = None
    grant_id: int | None = None
    department_id: int | None = None
    budget_id: int | None = None


def _parse_fiscal_year(value) -> int | None:
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    if len(raw) == 4 and raw.isdigit():
        return int(raw)
    try:
        return parse_iso_date(raw).year
    except ValueError:
        raise ValidationError("fiscal_year must be YYYY or YYYY-MM-DD")


def parse_budget_filters(args) -> BudgetFilters:
    """Build BudgetFilters from request args (any mapping with .get)."""
    return BudgetFilters(
        fiscal_year=_parse_fiscal_year(args.get("fiscal_year")),
        grant_id=parse_positive_int(args.get("grant_id"), "grant_id"),
        department_id=parse_positive_int(args.get("department_id"), "department_id"),
        budget_id=parse_positive_int(args.get("budget_id"), "budget_id"),
    )


def _visible_budgets_query(actor: ActorContext):
    """Base query scoped to the actor's role, or None when the actor sees nothing."""
    query = db.session.query(Budget).filter(Budget.deleted_at.is_(None))

    if actor.role in OVERSIGHT_ROLES:
        return query
    if actor.is_finance_staff:
        return query.filter(Budget.budget_type.in_(BudgetType.ALL))
    if actor.is_operational_staff:
        return query.filter(
            Budget.budget_type == BudgetType.STAFF,
            Budget.user_id == actor.user_id,
        )
    return None


def resolve_visible_budgets(actor: ActorContext, filters: BudgetFilters | None = None) -> list[Budget]:
    """
    Budgets the actor may see, ordered by name.

    Returns an empty list (never raises) when nothing matches.
    """
    query = _visible_budgets_query(actor)
    if query is None:
        current_app.logger.warning(
            "Budget visibility requested for user %s with role %r; returning no budgets",
            actor.user_id,
            actor.role,
        )
        return []

    filters = filters or BudgetFilters()
    if filters.fiscal_year is not None:
        query = query.filter(db.extract("year", Budget.fiscal_year_start) == filters.fiscal_year)
    if filters.grant_id is not None:
        query = query.filter(Budget.grant_id == filters.grant_id)
    if filters.department_id is not None:
        query = query.filter(Budget.department_id == filters.department_id)
    if filters.budget_id is not None:
        query = query.filter(Budget.id == filters.budget_id)

    return query.order_by(Budget.name.asc(), Budget.id.asc()).all()


def can_view_budget(actor: ActorContext, budget_id: int) -> bool:
    """Whether budget_id is among the budgets the resolver returns for the actor."""
    budgets = resolve_visible_budgets(actor, BudgetFilters(budget_id=budget_id))
    return any(b.id == budget_id for b in budgets)


def get_budget(budget_id: int) -> Budget:
    """Fresh read of a non-deleted budget."""
    budget = (
        db.session.query(Budget)
        .populate_existing()
        .filter(Budget.id == budget_id, Budget.deleted_at.is_(None))
        .first()
    )
    if not budget:
        raise BudgetNotFoundError(f"Budget {budget_id} not found")
    return budget


def get_distinct_fiscal_years() -> list[date]:
    """Distinct fiscal_year_start values of live budgets, most recent first."""
    rows = (
        db.session.query(Budget.fiscal_year_start)
        .filter(Budget.deleted_at.is_(None))
        .distinct()
        .order_by(Budget.fiscal_year_start.desc())
        .all()
    )
    return [row[0] for row in rows]


def create_budget(
    *,
    name: str,
    budget_type: str,
    grant_id: int,
    department_id: int,
    fiscal_year_start: date,
    fiscal_year_end: date,
    user_id: int | None = None,
    notes: str | None = None,
) -> Budget:
    """
    Create a budget.

    Staff budgets must name their owning staff member.

    Raises:
        ValidationError: bad type, missing owner, bad dates, unknown grant,
            department, or owner
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Budget name is required")

    if budget_type not in BudgetType.ALL:
        raise ValidationError(f"Invalid budget type. Must be one of: {', '.join(BudgetType.ALL)}")

    if budget_type == BudgetType.STAFF and user_id is None:
        raise ValidationError("Staff budgets must be assigned to a staff member")

    if fiscal_year_end < fiscal_year_start:
        raise ValidationError("fiscal_year_end cannot be before fiscal_year_start")

    if not db.session.query(Grant).filter(Grant.id == grant_id, Grant.deleted_at.is_(None)).first():
        raise ValidationError("Grant not found")
    if not db.session.query(Department).filter(Department.id == department_id, Department.deleted_at.is_(None)).first():
        raise ValidationError("Department not found")
    if user_id is not None and not db.session.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first():
        raise ValidationError("Budget owner not found")

    budget = Budget(
        name=name,
        budget_type=budget_type,
        grant_id=grant_id,
        department_id=department_id,
        fiscal_year_start=fiscal_year_start,
        fiscal_year_end=fiscal_year_end,
        user_id=user_id,
        notes=notes,
    )
    db.session.add(budget)
    db.session.commit()

    return budget
