# Overview: Service-layer operations for budget allocations; encapsulates business logic and database work.

"""
Allocation Mutation Service

Adds, edits, and soft-deletes budget allocations under the access policy in
azwork.permissions.policy.

WRITE SEQUENCE (one transaction per call):
1. Fresh read of the allocation (locked) and its budget
2. Access check against the budget's current type and owner
3. Intersect submitted keys with the actor's editable fields; drop the rest
4. Coerce values, enforce the vendor/client-name rule
5. Persist only the fields whose values changed

Dropping fields the actor may not write is silent: forms post every column
and the server keeps what the actor is allowed to change. Denials, by
contrast, roll back and are recorded as security events.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Budget, BudgetAllocation
from ..permissions import (
    ActorContext,
    AllocationField,
    FINANCE_FIELDS,
    FUNDING_FIELDS,
    PaymentStatus,
    can_access_for_edit,
    can_add,
    can_delete,
    can_view,
    can_void,
    editable_fields,
    field_names,
    submitted_fields,
)
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_fields
from . import budget_service, permission_service, vendor_service
from .budget_service import BudgetFilters, BudgetNotFoundError
from .concurrency import lock_for_update, run_in_transaction
from .permission_service import PermissionDeniedError
from azwork.time_utils import utcnow


class AllocationNotFoundError(NotFoundError):
    """Raised when an allocation is missing or soft-deleted."""
    pass


FINANCE_COLUMNS = frozenset(f.value for f in FINANCE_FIELDS)


def _record_denials(func):
    """Run func; persist any PermissionDeniedError as a security event and re-raise."""
    try:
        return func()
    except PermissionDeniedError as exc:
        permission_service.record_denial(exc)
        raise


def _deny(actor: ActorContext, message: str, *, action: str, budget: Budget) -> PermissionDeniedError:
    return PermissionDeniedError(
        message,
        actor_user_id=actor.user_id,
        action=action,
        resource=f"budget:{budget.id}",
    )


def _load_allocation(allocation_id: int, *, lock: bool = False) -> tuple[BudgetAllocation, Budget]:
    query = db.session.query(BudgetAllocation).populate_existing().filter(
        BudgetAllocation.id == allocation_id,
        BudgetAllocation.deleted_at.is_(None),
    )
    if lock:
        query = lock_for_update(query)
    allocation = query.first()
    if not allocation:
        raise AllocationNotFoundError(f"Allocation {allocation_id} not found")

    try:
        budget = budget_service.get_budget(allocation.budget_id)
    except BudgetNotFoundError:
        raise AllocationNotFoundError(f"Allocation {allocation_id} not found")
    return allocation, budget


def _permitted_fields(actor: ActorContext, budget: Budget, submitted: dict, *, allocation_id=None) -> set:
    """Submitted fields the actor may write, with unauthorized voids removed."""
    fields = submitted_fields(submitted) & editable_fields(actor, budget)

    if AllocationField.PAYMENT_STATUS in fields and not can_void(actor):
        if PaymentStatus.normalize(submitted.get("payment_status")) == PaymentStatus.VOID:
            current_app.logger.warning(
                "Stripped Void status submitted by non-director user %s (allocation=%s budget=%s)",
                actor.user_id,
                allocation_id,
                budget.id,
            )
            fields.discard(AllocationField.PAYMENT_STATUS)
    return fields


def _coerce_patch(submitted: dict, fields: set) -> dict:
    patch = coerce_fields(
        model=BudgetAllocation,
        payload=submitted,
        fields=field_names(fields),
    )

    if "payment_status" in patch:
        status = PaymentStatus.normalize(patch["payment_status"])
        if status is None:
            raise ValidationError(
                f"Invalid payment status. Must be one of: {', '.join(PaymentStatus.ALL)}"
            )
        patch["payment_status"] = status

    if patch.get("client_name") == "":
        patch["client_name"] = None
    return patch


def _enforce_client_name_rule(patch: dict, mask: frozenset, current: BudgetAllocation | None = None) -> None:
    """
    Validate the effective vendor and its client-name requirement.

    The effective vendor is the submitted one when the actor may change it,
    otherwise the stored one. It must be active for every edit; the client
    name itself is only checked for actors who may edit it.
    """
    vendor_id = patch["vendor_id"] if "vendor_id" in patch else getattr(current, "vendor_id", None)
    if vendor_id is None:
        if AllocationField.VENDOR_ID in mask:
            raise ValidationError("Vendor is required.")
        return
    requires_client_name = vendor_service.get_client_name_requirement(vendor_id)

    if AllocationField.CLIENT_NAME not in mask:
        return

    client_name = patch["client_name"] if "client_name" in patch else getattr(current, "client_name", None)
    if requires_client_name and not client_name:
        raise ValidationError("Client Name is required for the selected vendor.")
    if not requires_client_name and client_name is not None:
        patch["client_name"] = None


def _stamp_finance(allocation: BudgetAllocation, actor: ActorContext, columns) -> None:
    if actor.is_finance_staff and FINANCE_COLUMNS.intersection(columns):
        allocation.fin_processed_by_user_id = actor.user_id
        allocation.fin_processed_at = utcnow()


def add_allocation(budget_id: int, submitted: dict, actor: ActorContext) -> BudgetAllocation:
    """
    Record a new allocation against a budget.

    Raises:
        BudgetNotFoundError: budget missing or soft-deleted
        PermissionDeniedError: actor may not add to this budget
        ValidationError: missing vendor/date, malformed values, vendor rule
        PersistenceError: database failure
    """
    submitted = submitted or {}

    def _op():
        budget = budget_service.get_budget(budget_id)
        if not can_add(actor, budget):
            raise _deny(actor, "You do not have permission to add allocations to this budget.",
                        action="ADD_ALLOCATION", budget=budget)

        if submitted.get("vendor_id") in (None, ""):
            raise ValidationError("Vendor is required.")
        if submitted.get("transaction_date") in (None, ""):
            raise ValidationError("Transaction Date is required.")

        mask = editable_fields(actor, budget)
        fields = _permitted_fields(actor, budget, submitted)
        patch = _coerce_patch(submitted, fields)
        patch.setdefault("payment_status", PaymentStatus.UNPAID)
        _enforce_client_name_rule(patch, mask)

        now = utcnow()
        allocation = BudgetAllocation(
            budget_id=budget.id,
            created_by_user_id=actor.user_id,
            updated_by_user_id=actor.user_id,
            created_at=now,
            updated_at=now,
            **patch,
        )
        _stamp_finance(allocation, actor, [k for k, v in patch.items() if v is not None])

        db.session.add(allocation)
        db.session.flush()

        current_app.logger.info(
            "Allocation %s added to budget %s by user %s", allocation.id, budget.id, actor.user_id
        )
        return allocation

    return _record_denials(lambda: run_in_transaction(
        _op,
        action="ADD_ALLOCATION",
        actor_user_id=actor.user_id,
        entity_id=None,
    ))


def apply_update(allocation_id: int, submitted: dict, actor: ActorContext) -> BudgetAllocation:
    """
    Apply an edit to an allocation, keeping only the fields the actor may write.

    Submitting the same values twice leaves stored state unchanged: only
    fields whose values differ are written, and the audit/finance stamps
    move only when something was written.

    Raises:
        AllocationNotFoundError: allocation missing or soft-deleted
        PermissionDeniedError: actor has no edit access to the budget
        ConflictError: allocation is Void
        ValidationError: malformed values, vendor rule
        PersistenceError: database failure
    """
    submitted = submitted or {}

    def _op():
        allocation, budget = _load_allocation(allocation_id, lock=True)

        if not can_access_for_edit(actor, budget):
            raise _deny(actor, "You do not have permission to edit this allocation.",
                        action="EDIT_ALLOCATION", budget=budget)

        if allocation.is_void:
            raise ConflictError("This allocation is void and can no longer be edited.")

        mask = editable_fields(actor, budget)
        fields = _permitted_fields(actor, budget, submitted, allocation_id=allocation.id)
        patch = _coerce_patch(submitted, fields)
        _enforce_client_name_rule(patch, mask, current=allocation)

        changes = {k: v for k, v in patch.items() if getattr(allocation, k) != v}
        if not changes:
            current_app.logger.debug("No changes for allocation %s from user %s", allocation.id, actor.user_id)
            return allocation

        for key, value in changes.items():
            setattr(allocation, key, value)
        allocation.updated_by_user_id = actor.user_id
        allocation.updated_at = utcnow()
        _stamp_finance(allocation, actor, changes)

        db.session.flush()

        if changes.get("payment_status") == PaymentStatus.VOID:
            current_app.logger.info("Allocation %s voided by director %s", allocation.id, actor.user_id)
        current_app.logger.info(
            "Allocation %s updated by user %s: %s", allocation.id, actor.user_id, sorted(changes)
        )
        return allocation

    return _record_denials(lambda: run_in_transaction(
        _op,
        action="EDIT_ALLOCATION",
        actor_user_id=actor.user_id,
        entity_id=allocation_id,
    ))


def soft_delete_allocation(allocation_id: int, actor: ActorContext) -> BudgetAllocation:
    """
    Soft delete an allocation (sets deleted_at; rows are never removed).

    Raises:
        AllocationNotFoundError: allocation missing or already deleted
        PermissionDeniedError: actor may not delete under this budget
        ConflictError: allocation is Void
        PersistenceError: database failure
    """
    def _op():
        allocation, budget = _load_allocation(allocation_id, lock=True)

        if not can_delete(actor, budget):
            raise _deny(actor, "You do not have permission to delete this allocation.",
                        action="DELETE_ALLOCATION", budget=budget)

        if allocation.is_void:
            raise ConflictError("Void allocations cannot be deleted.")

        now = utcnow()
        allocation.deleted_at = now
        allocation.updated_at = now
        allocation.updated_by_user_id = actor.user_id
        db.session.flush()

        current_app.logger.info("Allocation %s soft-deleted by user %s", allocation.id, actor.user_id)
        return allocation

    return _record_denials(lambda: run_in_transaction(
        _op,
        action="DELETE_ALLOCATION",
        actor_user_id=actor.user_id,
        entity_id=allocation_id,
    ))


def _row_flags(actor: ActorContext, budget: Budget, allocation: BudgetAllocation) -> dict:
    editable = can_access_for_edit(actor, budget) and not allocation.is_void
    return {
        "can_edit": editable,
        "can_delete": can_delete(actor, budget) and not allocation.is_void,
        "can_void": editable and can_void(actor),
    }


def _serialize(actor: ActorContext, budget: Budget, allocation: BudgetAllocation) -> dict:
    data = allocation.to_dict()
    data["budget_type"] = budget.budget_type
    data.update(_row_flags(actor, budget, allocation))
    return data


def get_allocation_details(allocation_id: int, actor: ActorContext) -> dict:
    """
    Allocation plus what the actor may do with it.

    editable_fields is empty for Void allocations and for budgets the actor
    can view but not edit.
    """
    def _op():
        allocation, budget = _load_allocation(allocation_id)
        if not can_view(actor, budget):
            raise _deny(actor, "You do not have permission to view this allocation.",
                        action="VIEW_ALLOCATION", budget=budget)

        fields = frozenset() if allocation.is_void else editable_fields(actor, budget)
        return {
            "allocation": _serialize(actor, budget, allocation),
            "budget_type": budget.budget_type,
            "editable_fields": field_names(fields),
        }

    return _record_denials(_op)


def _require_visible_budget(actor: ActorContext, budget_id: int, action: str) -> Budget:
    # Missing and hidden budgets get the same denial.
    if not budget_service.can_view_budget(actor, budget_id):
        raise PermissionDeniedError(
            "You do not have permission to view this budget.",
            actor_user_id=actor.user_id,
            action=action,
            resource=f"budget:{budget_id}",
        )
    return budget_service.get_budget(budget_id)


def list_allocations_for_budget(budget_id: int, actor: ActorContext) -> list[dict]:
    """Live allocations of one visible budget, newest transaction first."""
    def _op():
        budget = _require_visible_budget(actor, budget_id, "VIEW_ALLOCATIONS")
        allocations = (
            db.session.query(BudgetAllocation)
            .filter(
                BudgetAllocation.budget_id == budget.id,
                BudgetAllocation.deleted_at.is_(None),
            )
            .order_by(
                BudgetAllocation.transaction_date.desc(),
                BudgetAllocation.created_at.desc(),
                BudgetAllocation.id.desc(),
            )
            .all()
        )
        return [_serialize(actor, budget, a) for a in allocations]

    return _record_denials(_op)


def query_allocations(
    actor: ActorContext,
    filters: BudgetFilters | None = None,
    budget_selector=None,
    page: int = 1,
    limit: int = 25,
) -> dict:
    """
    Paginated allocations across the budgets the resolver returns.

    budget_selector: None, "" or "all" for every visible budget, otherwise a
    budget id. A selector the actor cannot see yields an empty page rather
    than an error.
    """
    max_limit = current_app.config.get("ALLOCATION_PAGE_LIMIT_MAX", 100)
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    limit = min(limit, max_limit)

    budgets = {b.id: b for b in budget_service.resolve_visible_budgets(actor, filters)}

    if budget_selector in (None, "", "all"):
        budget_ids = list(budgets)
    else:
        try:
            selected = int(budget_selector)
        except (TypeError, ValueError):
            raise ValidationError("budget_id must be 'all' or a budget id")
        budget_ids = [selected] if selected in budgets else []

    pagination = {"page": page, "limit": limit, "total": 0, "pages": 0}
    if not budget_ids:
        return {"items": [], "pagination": pagination}

    query = db.session.query(BudgetAllocation).filter(
        BudgetAllocation.budget_id.in_(budget_ids),
        BudgetAllocation.deleted_at.is_(None),
    )
    total = query.count()
    rows = (
        query.order_by(
            BudgetAllocation.transaction_date.desc(),
            BudgetAllocation.id.desc(),
        )
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    pagination["total"] = total
    pagination["pages"] = (total + limit - 1) // limit
    return {
        "items": [_serialize(actor, budgets[a.budget_id], a) for a in rows],
        "pagination": pagination,
    }


def summarize_budget(budget_id: int, actor: ActorContext) -> dict:
    """Funding totals for a visible budget. Void and deleted allocations are excluded."""
    def _op():
        budget = _require_visible_budget(actor, budget_id, "VIEW_ALLOCATIONS")
        allocations = (
            db.session.query(BudgetAllocation)
            .filter(
                BudgetAllocation.budget_id == budget.id,
                BudgetAllocation.deleted_at.is_(None),
                BudgetAllocation.payment_status != PaymentStatus.VOID,
            )
            .all()
        )

        totals = {f.value: Decimal("0.00") for f in FUNDING_FIELDS}
        for allocation in allocations:
            for column in totals:
                totals[column] += getattr(allocation, column) or Decimal("0.00")

        grand_total = sum(totals.values(), Decimal("0.00"))
        return {
            "budget": budget.to_summary(),
            "allocation_count": len(allocations),
            "totals": {k: f"{v:.2f}" for k, v in totals.items()},
            "grand_total": f"{grand_total:.2f}",
        }

    return _record_denials(_op)
