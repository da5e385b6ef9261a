from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..permissions.categories import BudgetType, PaymentStatus
from ..permissions.definitions import FUNDING_FIELDS
from azwork.time_utils import to_utc_z, to_iso_date


def _amount(value) -> str:
    if value is None:
        value = Decimal("0.00")
    return f"{Decimal(value):.2f}"


class Budget(db.Model):
    """
    Budget pools that allocations are recorded against.

    Staff budgets are assigned to one staff member (user_id); Admin budgets
    are administered centrally by Finance and usually have no owner.

    READ-ONLY to the allocation policy: settings workflows create and edit
    budgets, the policy only reads budget_type and user_id.
    """
    __tablename__ = "budgets"
    __table_args__ = (
        db.Index("ix_budgets_user_id", "user_id"),
        db.Index("ix_budgets_grant_id", "grant_id"),
        db.Index("ix_budgets_department_id", "department_id"),
        db.Index("ix_budgets_fiscal_year_start", "fiscal_year_start"),
        db.Index("ix_budgets_deleted_at", "deleted_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Owning staff member (meaningful for Staff budgets only)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    grant_id = db.Column(db.Integer, db.ForeignKey("grants.id"), nullable=False)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=False)

    fiscal_year_start = db.Column(db.Date, nullable=False)
    fiscal_year_end = db.Column(db.Date, nullable=False)

    budget_type = db.Column(db.String(10), nullable=False, default=BudgetType.STAFF)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    owner = db.relationship("User", backref=db.backref("owned_budgets", lazy=True))
    grant = db.relationship("Grant", backref=db.backref("budgets", lazy=True))
    department = db.relationship("Department", backref=db.backref("budgets", lazy=True))

    def __repr__(self) -> str:
        return f"<Budget id={self.id} name={self.name!r} type={self.budget_type}>"

    def to_summary(self) -> dict:
        """Shape returned by the visibility resolver."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.budget_type,
            "owner_id": self.user_id,
            "department_id": self.department_id,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "budget_type": self.budget_type,
            "user_id": self.user_id,
            "grant_id": self.grant_id,
            "department_id": self.department_id,
            "fiscal_year_start": to_iso_date(self.fiscal_year_start),
            "fiscal_year_end": to_iso_date(self.fiscal_year_end),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class BudgetAllocation(db.Model):
    """
    One financial transaction recorded against a budget.

    Staff-side columns describe the transaction; fin_* columns are filled in
    by Finance. Which of them an actor may write is decided per request by
    azwork.permissions.policy from the parent budget, never stored here.

    LIFECYCLE:
    - payment_status: Unpaid <-> Paid, then Void (terminal, director only)
    - deleted_at: soft delete; rows are never removed

    version_id guards the check-then-write sequence against concurrent edits.
    """
    __tablename__ = "budget_allocations"
    __table_args__ = (
        db.Index("ix_alloc_budget_id", "budget_id"),
        db.Index("ix_alloc_transaction_date", "transaction_date"),
        db.Index("ix_alloc_deleted_at", "deleted_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    budget_id = db.Column(db.Integer, db.ForeignKey("budgets.id"), nullable=False)

    # Staff side
    transaction_date = db.Column(db.Date, nullable=False)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True)
    client_name = db.Column(db.String(255), nullable=True)
    voucher_number = db.Column(db.String(100), nullable=True)
    enrollment_date = db.Column(db.Date, nullable=True)
    class_start_date = db.Column(db.Date, nullable=True)
    purchase_date = db.Column(db.Date, nullable=True)
    payment_status = db.Column(db.String(10), nullable=False, default=PaymentStatus.UNPAID)
    program_explanation = db.Column(db.Text, nullable=True)

    funding_dw = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    funding_dw_admin = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    funding_dw_sus = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    funding_adult = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    funding_adult_admin = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    funding_adult_sus = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    funding_rr = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    funding_h1b = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    funding_youth_is = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    funding_youth_os = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    funding_youth_admin = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    # Finance side
    fin_voucher_received = db.Column(db.String(10), nullable=True)
    fin_accrual_date = db.Column(db.Date, nullable=True)
    fin_obligated_date = db.Column(db.Date, nullable=True)
    fin_comments = db.Column(db.Text, nullable=True)
    fin_expense_code = db.Column(db.String(50), nullable=True)

    # Stamped when a finance-department user changes fin_* columns
    fin_processed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    fin_processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    budget = db.relationship("Budget", backref=db.backref("allocations", lazy=True))
    vendor = db.relationship("Vendor")
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    updated_by = db.relationship("User", foreign_keys=[updated_by_user_id])
    fin_processed_by = db.relationship("User", foreign_keys=[fin_processed_by_user_id])

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<BudgetAllocation id={self.id} budget_id={self.budget_id} status={self.payment_status}>"

    @property
    def is_void(self) -> bool:
        return self.payment_status == PaymentStatus.VOID

    def row_total(self) -> Decimal:
        """Sum of all funding columns; void rows count as zero."""
        if self.is_void:
            return Decimal("0.00")
        return sum((getattr(self, f.value) or Decimal("0.00") for f in FUNDING_FIELDS), Decimal("0.00"))

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "budget_id": self.budget_id,
            "transaction_date": to_iso_date(self.transaction_date),
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "client_name": self.client_name,
            "voucher_number": self.voucher_number,
            "enrollment_date": to_iso_date(self.enrollment_date),
            "class_start_date": to_iso_date(self.class_start_date),
            "purchase_date": to_iso_date(self.purchase_date),
            "payment_status": self.payment_status,
            "program_explanation": self.program_explanation,
            "fin_voucher_received": self.fin_voucher_received,
            "fin_accrual_date": to_iso_date(self.fin_accrual_date),
            "fin_obligated_date": to_iso_date(self.fin_obligated_date),
            "fin_comments": self.fin_comments,
            "fin_expense_code": self.fin_expense_code,
            "fin_processed_by_user_id": self.fin_processed_by_user_id,
            "fin_processed_at": to_utc_z(self.fin_processed_at),
            "created_by_user_id": self.created_by_user_id,
            "updated_by_user_id": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "row_total": _amount(self.row_total()),
        }
        for field in FUNDING_FIELDS:
            data[field.value] = _amount(getattr(self, field.value))
        return data
