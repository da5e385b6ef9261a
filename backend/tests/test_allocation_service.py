"""
Allocation mutation service tests.

Covers add/edit/delete under the access policy: field stripping, the Void
rules, the vendor/client-name rule, finance stamping, idempotence, denial
logging, and persistence error wrapping.
"""

import pytest
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from azwork.extensions import db
from azwork.models import BudgetAllocation, SecurityEvent
from azwork.services import allocation_service
from azwork.services.allocation_service import AllocationNotFoundError
from azwork.services.budget_service import BudgetFilters, BudgetNotFoundError
from azwork.services.concurrency import PersistenceError
from azwork.services.permission_service import PermissionDeniedError
from azwork.validation import ConflictError, ValidationError
from azwork.time_utils import utcnow


@pytest.fixture
def vendor(make_vendor):
    return make_vendor("Office Supply Co")


@pytest.fixture
def training_vendor(make_vendor):
    return make_vendor("Pima Training Institute", client_name_required=True)


@pytest.fixture
def staff_budget(make_budget, staff_a):
    return make_budget("Staff A Budget", "Staff", owner=staff_a)


@pytest.fixture
def admin_budget(make_budget):
    return make_budget("Admin Pool", "Admin")


@pytest.fixture
def allocation(make_allocation, staff_budget, staff_a, vendor):
    return make_allocation(staff_budget, staff_a, vendor=vendor, voucher_number="V-100")


def _reload(allocation_id):
    db.session.expire_all()
    return db.session.get(BudgetAllocation, allocation_id)


# =============================================================================
# EDIT: FIELD MASKS
# =============================================================================

class TestApplyUpdateMasks:

    def test_owner_edits_staff_fields(self, allocation, staff_a, actor_for):
        allocation_service.apply_update(
            allocation.id,
            {"voucher_number": "V-200", "funding_adult": "25.50", "payment_status": "Paid"},
            actor_for(staff_a),
        )
        row = _reload(allocation.id)
        assert row.voucher_number == "V-200"
        assert row.funding_adult == Decimal("25.50")
        assert row.payment_status == "Paid"
        assert row.updated_by_user_id == staff_a.id

    def test_owner_cannot_touch_finance_fields(self, allocation, staff_a, actor_for):
        allocation_service.apply_update(
            allocation.id,
            {"voucher_number": "V-300", "fin_comments": "sneaky", "fin_expense_code": "X1"},
            actor_for(staff_a),
        )
        row = _reload(allocation.id)
        assert row.voucher_number == "V-300"
        assert row.fin_comments is None
        assert row.fin_expense_code is None

    def test_finance_on_staff_budget_writes_only_finance_fields(self, allocation, finance_user, actor_for):
        allocation_service.apply_update(
            allocation.id,
            {"fin_comments": "Received", "voucher_number": "HACK", "funding_dw": "999.00"},
            actor_for(finance_user),
        )
        row = _reload(allocation.id)
        assert row.fin_comments == "Received"
        assert row.voucher_number == "V-100"
        assert row.funding_dw == Decimal("100.00")

    def test_finance_stamp_on_finance_field_change(self, allocation, finance_user, actor_for):
        allocation_service.apply_update(
            allocation.id,
            {"fin_accrual_date": "2024-09-01", "fin_voucher_received": "Yes"},
            actor_for(finance_user),
        )
        row = _reload(allocation.id)
        assert row.fin_accrual_date == date(2024, 9, 1)
        assert row.fin_processed_by_user_id == finance_user.id
        assert row.fin_processed_at is not None

    def test_finance_on_admin_budget_editing_staff_fields_only_is_not_stamped(
        self, make_allocation, admin_budget, finance_user, vendor, actor_for
    ):
        row = make_allocation(admin_budget, finance_user, vendor=vendor)
        allocation_service.apply_update(row.id, {"voucher_number": "ADM-1"}, actor_for(finance_user))
        row = _reload(row.id)
        assert row.voucher_number == "ADM-1"
        assert row.fin_processed_by_user_id is None

    def test_director_edits_staff_budget(self, allocation, director, actor_for):
        allocation_service.apply_update(allocation.id, {"program_explanation": "Approved"}, actor_for(director))
        assert _reload(allocation.id).program_explanation == "Approved"

    def test_invalid_payment_status(self, allocation, staff_a, actor_for):
        with pytest.raises(ValidationError, match="Invalid payment status"):
            allocation_service.apply_update(allocation.id, {"payment_status": "Maybe"}, actor_for(staff_a))

    def test_status_shorthand(self, allocation, staff_a, actor_for):
        allocation_service.apply_update(allocation.id, {"payment_status": "P"}, actor_for(staff_a))
        assert _reload(allocation.id).payment_status == "Paid"

    def test_malformed_amount_rejected(self, allocation, staff_a, actor_for):
        with pytest.raises(ValidationError):
            allocation_service.apply_update(allocation.id, {"funding_rr": "12.345"}, actor_for(staff_a))
        assert _reload(allocation.id).funding_rr == Decimal("0.00")

    def test_malformed_date_rejected(self, allocation, staff_a, actor_for):
        with pytest.raises(ValidationError):
            allocation_service.apply_update(allocation.id, {"purchase_date": "08/15/2024"}, actor_for(staff_a))


# =============================================================================
# EDIT: ACCESS
# =============================================================================

class TestApplyUpdateAccess:

    def test_cross_owner_edit_denied_and_logged(self, allocation, staff_b, actor_for, db_session):
        with pytest.raises(PermissionDeniedError):
            allocation_service.apply_update(allocation.id, {"voucher_number": "X"}, actor_for(staff_b))

        assert _reload(allocation.id).voucher_number == "V-100"
        event = db_session.query(SecurityEvent).filter_by(user_id=staff_b.id).one()
        assert event.event_type == "PERMISSION_DENIED"
        assert event.action == "EDIT_ALLOCATION"
        assert event.success is False

    def test_director_cannot_edit_admin_budget(self, make_allocation, admin_budget, finance_user, director, vendor, actor_for):
        row = make_allocation(admin_budget, finance_user, vendor=vendor)
        with pytest.raises(PermissionDeniedError):
            allocation_service.apply_update(row.id, {"voucher_number": "X"}, actor_for(director))

    def test_administrator_cannot_edit(self, allocation, administrator, actor_for):
        with pytest.raises(PermissionDeniedError):
            allocation_service.apply_update(allocation.id, {"voucher_number": "X"}, actor_for(administrator))

    def test_budget_reassignment_revokes_access(self, allocation, staff_budget, staff_a, staff_b, actor_for, db_session):
        staff_budget.user_id = staff_b.id
        db_session.commit()

        with pytest.raises(PermissionDeniedError):
            allocation_service.apply_update(allocation.id, {"voucher_number": "X"}, actor_for(staff_a))
        allocation_service.apply_update(allocation.id, {"voucher_number": "Y"}, actor_for(staff_b))
        assert _reload(allocation.id).voucher_number == "Y"

    def test_missing_allocation(self, staff_a, actor_for):
        with pytest.raises(AllocationNotFoundError):
            allocation_service.apply_update(98765, {"voucher_number": "X"}, actor_for(staff_a))

    def test_allocation_under_deleted_budget_is_not_found(self, allocation, staff_budget, staff_a, actor_for, db_session):
        staff_budget.deleted_at = utcnow()
        db_session.commit()
        with pytest.raises(AllocationNotFoundError):
            allocation_service.apply_update(allocation.id, {"voucher_number": "X"}, actor_for(staff_a))


# =============================================================================
# VOID
# =============================================================================

class TestVoid:

    def test_non_director_void_is_stripped(self, allocation, staff_a, actor_for):
        result = allocation_service.apply_update(
            allocation.id,
            {"payment_status": "Void", "voucher_number": "V-101"},
            actor_for(staff_a),
        )
        assert result is not None
        row = _reload(allocation.id)
        assert row.payment_status == "Unpaid"
        assert row.voucher_number == "V-101"

    def test_director_voids_and_void_is_terminal(self, allocation, director, staff_a, actor_for):
        allocation_service.apply_update(allocation.id, {"payment_status": "Void"}, actor_for(director))
        assert _reload(allocation.id).payment_status == "Void"

        with pytest.raises(ConflictError):
            allocation_service.apply_update(allocation.id, {"payment_status": "Unpaid"}, actor_for(director))
        with pytest.raises(ConflictError):
            allocation_service.apply_update(allocation.id, {"voucher_number": "X"}, actor_for(staff_a))
        assert _reload(allocation.id).payment_status == "Void"

    def test_paid_can_be_voided(self, make_allocation, staff_budget, staff_a, director, vendor, actor_for):
        row = make_allocation(staff_budget, staff_a, vendor=vendor, payment_status="Paid")
        allocation_service.apply_update(row.id, {"payment_status": "void"}, actor_for(director))
        assert _reload(row.id).payment_status == "Void"

    def test_void_rows_are_excluded_from_totals(self, allocation, staff_budget, director, actor_for):
        before = allocation_service.summarize_budget(staff_budget.id, actor_for(director))
        assert before["grand_total"] == "100.00"

        allocation_service.apply_update(allocation.id, {"payment_status": "Void"}, actor_for(director))

        after = allocation_service.summarize_budget(staff_budget.id, actor_for(director))
        assert after["grand_total"] == "0.00"
        assert after["allocation_count"] == 0


# =============================================================================
# VENDOR / CLIENT NAME RULE
# =============================================================================

class TestClientNameRule:

    def test_required_client_name_missing(self, allocation, training_vendor, staff_a, actor_for):
        with pytest.raises(ValidationError, match="Client Name is required"):
            allocation_service.apply_update(
                allocation.id,
                {"vendor_id": training_vendor.id, "client_name": ""},
                actor_for(staff_a),
            )
        assert _reload(allocation.id).vendor_id != training_vendor.id

    def test_required_client_name_present(self, allocation, training_vendor, staff_a, actor_for):
        allocation_service.apply_update(
            allocation.id,
            {"vendor_id": training_vendor.id, "client_name": "J. Rivera"},
            actor_for(staff_a),
        )
        row = _reload(allocation.id)
        assert row.vendor_id == training_vendor.id
        assert row.client_name == "J. Rivera"

    def test_client_name_cleared_when_vendor_does_not_require_it(self, allocation, staff_a, actor_for):
        allocation_service.apply_update(allocation.id, {"client_name": "Someone"}, actor_for(staff_a))
        assert _reload(allocation.id).client_name is None

    def test_inactive_vendor_rejected(self, allocation, make_vendor, staff_a, actor_for):
        closed = make_vendor("Closed Vendor", is_active=False)
        with pytest.raises(ValidationError, match="inactive vendor"):
            allocation_service.apply_update(allocation.id, {"vendor_id": closed.id}, actor_for(staff_a))

    def test_finance_edit_rejects_inactive_stored_vendor(self, make_allocation, staff_budget, staff_a, finance_user, make_vendor, actor_for):
        closed = make_vendor("Closed Vendor", is_active=False)
        row = make_allocation(staff_budget, staff_a, vendor=closed)
        with pytest.raises(ValidationError, match="inactive vendor"):
            allocation_service.apply_update(row.id, {"fin_comments": "ok"}, actor_for(finance_user))
        assert _reload(row.id).fin_comments is None


# =============================================================================
# IDEMPOTENCE
# =============================================================================

class TestIdempotence:

    def test_repeat_update_is_a_noop(self, allocation, staff_a, actor_for):
        payload = {"voucher_number": "V-777", "funding_youth_is": "40", "purchase_date": "2024-08-20"}

        allocation_service.apply_update(allocation.id, payload, actor_for(staff_a))
        first = _reload(allocation.id)
        first_state = first.to_dict()
        first_version = first.version_id

        allocation_service.apply_update(allocation.id, payload, actor_for(staff_a))
        second = _reload(allocation.id)

        assert second.to_dict() == first_state
        assert second.version_id == first_version

    def test_repeat_finance_update_keeps_first_stamp(self, allocation, finance_user, actor_for):
        payload = {"fin_expense_code": "6100"}
        allocation_service.apply_update(allocation.id, payload, actor_for(finance_user))
        stamped_at = _reload(allocation.id).fin_processed_at

        allocation_service.apply_update(allocation.id, payload, actor_for(finance_user))
        assert _reload(allocation.id).fin_processed_at == stamped_at


# =============================================================================
# ADD
# =============================================================================

class TestAddAllocation:

    def test_owner_adds(self, staff_budget, staff_a, vendor, actor_for):
        row = allocation_service.add_allocation(
            staff_budget.id,
            {"vendor_id": vendor.id, "transaction_date": "2024-10-01", "funding_dw": "12.00"},
            actor_for(staff_a),
        )
        row = _reload(row.id)
        assert row.budget_id == staff_budget.id
        assert row.payment_status == "Unpaid"
        assert row.created_by_user_id == staff_a.id
        assert row.funding_dw == Decimal("12.00")

    def test_non_director_add_with_void_is_unpaid(self, staff_budget, staff_a, vendor, actor_for):
        row = allocation_service.add_allocation(
            staff_budget.id,
            {"vendor_id": vendor.id, "transaction_date": "2024-10-01", "payment_status": "Void"},
            actor_for(staff_a),
        )
        assert _reload(row.id).payment_status == "Unpaid"

    def test_requires_vendor_and_date(self, staff_budget, staff_a, vendor, actor_for):
        with pytest.raises(ValidationError, match="Vendor is required"):
            allocation_service.add_allocation(staff_budget.id, {"transaction_date": "2024-10-01"}, actor_for(staff_a))
        with pytest.raises(ValidationError, match="Transaction Date is required"):
            allocation_service.add_allocation(staff_budget.id, {"vendor_id": vendor.id}, actor_for(staff_a))

    def test_finance_cannot_add_to_staff_budget(self, staff_budget, finance_user, vendor, actor_for):
        with pytest.raises(PermissionDeniedError):
            allocation_service.add_allocation(
                staff_budget.id,
                {"vendor_id": vendor.id, "transaction_date": "2024-10-01"},
                actor_for(finance_user),
            )

    def test_finance_adds_to_admin_budget_with_finance_fields(self, admin_budget, finance_user, vendor, actor_for):
        row = allocation_service.add_allocation(
            admin_budget.id,
            {"vendor_id": vendor.id, "transaction_date": "2024-10-01", "fin_comments": "Obligated"},
            actor_for(finance_user),
        )
        row = _reload(row.id)
        assert row.fin_comments == "Obligated"
        assert row.fin_processed_by_user_id == finance_user.id

    def test_director_cannot_add_to_admin_budget(self, admin_budget, director, vendor, actor_for):
        with pytest.raises(PermissionDeniedError):
            allocation_service.add_allocation(
                admin_budget.id,
                {"vendor_id": vendor.id, "transaction_date": "2024-10-01"},
                actor_for(director),
            )

    def test_missing_budget(self, staff_a, vendor, actor_for):
        with pytest.raises(BudgetNotFoundError):
            allocation_service.add_allocation(
                4242, {"vendor_id": vendor.id, "transaction_date": "2024-10-01"}, actor_for(staff_a)
            )

    def test_client_name_required_on_add(self, staff_budget, staff_a, training_vendor, actor_for, db_session):
        with pytest.raises(ValidationError, match="Client Name is required"):
            allocation_service.add_allocation(
                staff_budget.id,
                {"vendor_id": training_vendor.id, "transaction_date": "2024-10-01"},
                actor_for(staff_a),
            )
        assert db_session.query(BudgetAllocation).count() == 0


# =============================================================================
# DELETE
# =============================================================================

class TestSoftDelete:

    def test_finance_cannot_delete_under_staff_budget(self, allocation, finance_user, actor_for):
        with pytest.raises(PermissionDeniedError):
            allocation_service.soft_delete_allocation(allocation.id, actor_for(finance_user))
        assert _reload(allocation.id).deleted_at is None

    def test_owner_cannot_delete(self, allocation, staff_a, actor_for):
        with pytest.raises(PermissionDeniedError):
            allocation_service.soft_delete_allocation(allocation.id, actor_for(staff_a))

    def test_finance_deletes_under_admin_budget(self, make_allocation, admin_budget, finance_user, vendor, actor_for, db_session):
        row = make_allocation(admin_budget, finance_user, vendor=vendor)
        allocation_service.soft_delete_allocation(row.id, actor_for(finance_user))

        row = _reload(row.id)
        assert row is not None
        assert row.deleted_at is not None

        with pytest.raises(AllocationNotFoundError):
            allocation_service.apply_update(row.id, {"fin_comments": "late"}, actor_for(finance_user))
        with pytest.raises(AllocationNotFoundError):
            allocation_service.soft_delete_allocation(row.id, actor_for(finance_user))

    def test_void_allocation_cannot_be_deleted(self, make_allocation, admin_budget, finance_user, vendor, actor_for):
        row = make_allocation(admin_budget, finance_user, vendor=vendor, payment_status="Void")
        with pytest.raises(ConflictError):
            allocation_service.soft_delete_allocation(row.id, actor_for(finance_user))


# =============================================================================
# READS
# =============================================================================

class TestReads:

    def test_details_for_finance_on_staff_budget(self, allocation, finance_user, actor_for):
        details = allocation_service.get_allocation_details(allocation.id, actor_for(finance_user))
        assert details["budget_type"] == "Staff"
        assert details["editable_fields"] == [
            "fin_accrual_date",
            "fin_comments",
            "fin_expense_code",
            "fin_obligated_date",
            "fin_voucher_received",
        ]
        assert details["allocation"]["can_edit"] is True
        assert details["allocation"]["can_delete"] is False
        assert details["allocation"]["can_void"] is False

    def test_details_for_void_row_have_no_editable_fields(self, make_allocation, staff_budget, staff_a, director, vendor, actor_for):
        row = make_allocation(staff_budget, staff_a, vendor=vendor, payment_status="Void")
        details = allocation_service.get_allocation_details(row.id, actor_for(director))
        assert details["editable_fields"] == []
        assert details["allocation"]["can_edit"] is False
        assert details["allocation"]["can_void"] is False

    def test_details_denied_for_other_staff(self, allocation, staff_b, actor_for):
        with pytest.raises(PermissionDeniedError):
            allocation_service.get_allocation_details(allocation.id, actor_for(staff_b))

    def test_list_for_budget_newest_first(self, make_allocation, staff_budget, staff_a, vendor, actor_for):
        make_allocation(staff_budget, staff_a, vendor=vendor, transaction_date=date(2024, 7, 10))
        make_allocation(staff_budget, staff_a, vendor=vendor, transaction_date=date(2024, 9, 10))
        items = allocation_service.list_allocations_for_budget(staff_budget.id, actor_for(staff_a))
        assert [i["transaction_date"] for i in items] == ["2024-09-10", "2024-07-10"]

    def test_list_for_budget_hides_deleted(self, make_allocation, staff_budget, staff_a, vendor, actor_for):
        make_allocation(staff_budget, staff_a, vendor=vendor, deleted_at=utcnow())
        assert allocation_service.list_allocations_for_budget(staff_budget.id, actor_for(staff_a)) == []

    def test_list_for_invisible_budget_denied(self, staff_budget, staff_b, actor_for):
        with pytest.raises(PermissionDeniedError):
            allocation_service.list_allocations_for_budget(staff_budget.id, actor_for(staff_b))

    def test_missing_and_hidden_budgets_deny_alike(self, staff_budget, staff_b, actor_for):
        actor = actor_for(staff_b)
        with pytest.raises(PermissionDeniedError) as hidden:
            allocation_service.summarize_budget(staff_budget.id, actor)
        with pytest.raises(PermissionDeniedError) as missing:
            allocation_service.summarize_budget(4242, actor)
        assert str(missing.value) == str(hidden.value)

    def test_summary_totals(self, make_allocation, staff_budget, staff_a, vendor, actor_for):
        make_allocation(staff_budget, staff_a, vendor=vendor, funding_dw=Decimal("10.25"), funding_h1b=Decimal("5.00"))
        make_allocation(staff_budget, staff_a, vendor=vendor, funding_dw=Decimal("0.75"))
        summary = allocation_service.summarize_budget(staff_budget.id, actor_for(staff_a))
        assert summary["totals"]["funding_dw"] == "11.00"
        assert summary["totals"]["funding_h1b"] == "5.00"
        assert summary["grand_total"] == "16.00"


class TestQueryAllocations:

    def test_pagination_and_cap(self, make_allocation, staff_budget, staff_a, vendor, actor_for):
        for day in (1, 2, 3):
            make_allocation(staff_budget, staff_a, vendor=vendor, transaction_date=date(2024, 8, day))
        actor = actor_for(staff_a)

        page = allocation_service.query_allocations(actor, page=1, limit=2)
        assert len(page["items"]) == 2
        assert page["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

        capped = allocation_service.query_allocations(actor, limit=500)
        assert capped["pagination"]["limit"] == 100

    def test_invisible_selector_is_empty(self, make_allocation, staff_budget, make_budget, staff_a, staff_b, vendor, actor_for):
        other = make_budget("Staff B Budget", "Staff", owner=staff_b)
        make_allocation(other, staff_b, vendor=vendor)
        result = allocation_service.query_allocations(actor_for(staff_a), budget_selector=str(other.id))
        assert result["items"] == []
        assert result["pagination"]["total"] == 0

    def test_finance_sees_across_budgets(self, make_allocation, staff_budget, admin_budget, staff_a, finance_user, vendor, actor_for):
        make_allocation(staff_budget, staff_a, vendor=vendor)
        make_allocation(admin_budget, finance_user, vendor=vendor)
        result = allocation_service.query_allocations(actor_for(finance_user), budget_selector="all")
        assert result["pagination"]["total"] == 2
        assert {i["budget_type"] for i in result["items"]} == {"Staff", "Admin"}

    def test_filters_narrow(self, make_allocation, staff_budget, make_budget, director, staff_a, vendor, actor_for):
        older = make_budget("Older", "Staff", owner=staff_a, fiscal_year_start=date(2023, 7, 1))
        make_allocation(staff_budget, staff_a, vendor=vendor)
        make_allocation(older, staff_a, vendor=vendor)
        result = allocation_service.query_allocations(actor_for(director), BudgetFilters(fiscal_year=2023))
        assert [i["budget_id"] for i in result["items"]] == [older.id]

    def test_bad_page(self, staff_a, actor_for):
        with pytest.raises(ValidationError):
            allocation_service.query_allocations(actor_for(staff_a), page=0)


# =============================================================================
# PERSISTENCE FAILURES
# =============================================================================

class TestPersistenceErrors:

    def test_commit_failure_is_wrapped_and_rolled_back(self, allocation, staff_a, actor_for, monkeypatch):
        actor = actor_for(staff_a)

        def boom():
            raise OperationalError("UPDATE budget_allocations", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db.session, "commit", boom)
        with pytest.raises(PersistenceError) as excinfo:
            allocation_service.apply_update(allocation.id, {"voucher_number": "LOST"}, actor)
        monkeypatch.undo()

        assert isinstance(excinfo.value.__cause__, OperationalError)
        assert "disk" not in str(excinfo.value)
        assert _reload(allocation.id).voucher_number == "V-100"

    def test_stale_row_is_wrapped(self, allocation, staff_a, actor_for, monkeypatch):
        actor = actor_for(staff_a)

        def stale():
            raise StaleDataError("UPDATE statement on table 'budget_allocations' expected to update 1 row(s)")

        monkeypatch.setattr(db.session, "flush", stale)
        with pytest.raises(PersistenceError):
            allocation_service.apply_update(allocation.id, {"voucher_number": "RACE"}, actor)
        monkeypatch.undo()

        assert _reload(allocation.id).voucher_number == "V-100"
