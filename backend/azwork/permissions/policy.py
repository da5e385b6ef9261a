# Overview: Allocation access decisions by role, department, and budget type.

"""
Allocation Access Policy

Decides whether an actor may view, add, edit (and which columns), delete,
or void allocations under a budget. Decisions depend only on the actor
context and the budget's current type and owner, which callers must read
fresh for every request.

    role      dept         budget          add  edit  fields    delete  void
    director  -            Staff           yes  yes   staff     no      yes
    director  -            Admin           no   no    -         no      no
    staff     operational  Staff (own)     yes  yes   staff     no      no
    staff     operational  Staff (other)   no   no    -         no      no
    staff     operational  Admin           no   no    -         no      no
    staff     finance      Staff           no   yes   finance   no      no
    staff     finance      Admin           yes  yes   all       yes     no

Administrators and kiosks never write allocations.
"""

from __future__ import annotations

from dataclasses import dataclass

from .categories import BudgetType
from .definitions import ALL_FIELDS, FINANCE_FIELDS, STAFF_FIELDS
from .roles import OVERSIGHT_ROLES, ROLE_DIRECTOR, ROLE_STAFF


@dataclass(frozen=True)
class ActorContext:
    """
    The acting user for one request.

    Built from a fresh user/department read; never taken from ambient
    session state inside the policy or services.
    """
    user_id: int
    role: str | None
    department_id: int | None = None
    is_finance: bool = False

    @property
    def is_director(self) -> bool:
        return self.role == ROLE_DIRECTOR

    @property
    def is_finance_staff(self) -> bool:
        return self.role == ROLE_STAFF and self.is_finance

    @property
    def is_operational_staff(self) -> bool:
        return self.role == ROLE_STAFF and not self.is_finance


def _owns(actor: ActorContext, budget) -> bool:
    return budget.user_id is not None and budget.user_id == actor.user_id


def can_view(actor: ActorContext, budget) -> bool:
    """Whether the budget (and its allocations) is visible to the actor."""
    if actor.role in OVERSIGHT_ROLES:
        return True
    if actor.is_finance_staff:
        return budget.budget_type in BudgetType.ALL
    if actor.is_operational_staff:
        return budget.budget_type == BudgetType.STAFF and _owns(actor, budget)
    return False


def can_add(actor: ActorContext, budget) -> bool:
    if actor.is_director:
        return budget.budget_type == BudgetType.STAFF
    if actor.is_finance_staff:
        return budget.budget_type == BudgetType.ADMIN
    if actor.is_operational_staff:
        return budget.budget_type == BudgetType.STAFF and _owns(actor, budget)
    return False


def can_access_for_edit(actor: ActorContext, budget) -> bool:
    """Whether the actor may open an allocation of this budget for editing at all."""
    if actor.is_director:
        return budget.budget_type == BudgetType.STAFF
    if actor.is_finance_staff:
        return budget.budget_type in BudgetType.ALL
    if actor.is_operational_staff:
        return budget.budget_type == BudgetType.STAFF and _owns(actor, budget)
    return False


def editable_fields(actor: ActorContext, budget) -> frozenset:
    """
    Field mask for the actor on this budget.

    Empty when the actor has no edit access. Director keeps payment_status
    through the staff fields, which is how a void is submitted.
    """
    if not can_access_for_edit(actor, budget):
        return frozenset()
    if actor.is_finance_staff:
        if budget.budget_type == BudgetType.ADMIN:
            return ALL_FIELDS
        return FINANCE_FIELDS
    return STAFF_FIELDS


def can_delete(actor: ActorContext, budget) -> bool:
    """Soft delete is reserved for Finance staff on Admin budgets."""
    return actor.is_finance_staff and budget.budget_type == BudgetType.ADMIN


def can_void(actor: ActorContext) -> bool:
    return actor.is_director
