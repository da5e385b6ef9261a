# Overview: All editable allocation fields organized by group.
# Each field is defined as: (field, label, description, group)

from enum import Enum

from .categories import FieldGroup


class AllocationField(str, Enum):
    """Writable budget allocation columns. Values are the column names."""
    TRANSACTION_DATE = "transaction_date"
    VENDOR_ID = "vendor_id"
    CLIENT_NAME = "client_name"
    VOUCHER_NUMBER = "voucher_number"
    ENROLLMENT_DATE = "enrollment_date"
    CLASS_START_DATE = "class_start_date"
    PURCHASE_DATE = "purchase_date"
    PAYMENT_STATUS = "payment_status"
    PROGRAM_EXPLANATION = "program_explanation"
    FUNDING_DW = "funding_dw"
    FUNDING_DW_ADMIN = "funding_dw_admin"
    FUNDING_DW_SUS = "funding_dw_sus"
    FUNDING_ADULT = "funding_adult"
    FUNDING_ADULT_ADMIN = "funding_adult_admin"
    FUNDING_ADULT_SUS = "funding_adult_sus"
    FUNDING_RR = "funding_rr"
    FUNDING_H1B = "funding_h1b"
    FUNDING_YOUTH_IS = "funding_youth_is"
    FUNDING_YOUTH_OS = "funding_youth_os"
    FUNDING_YOUTH_ADMIN = "funding_youth_admin"
    FIN_VOUCHER_RECEIVED = "fin_voucher_received"
    FIN_ACCRUAL_DATE = "fin_accrual_date"
    FIN_OBLIGATED_DATE = "fin_obligated_date"
    FIN_COMMENTS = "fin_comments"
    FIN_EXPENSE_CODE = "fin_expense_code"


F = AllocationField


# -- STAFF SIDE --

STAFF_FIELD_DEFINITIONS = [
    (F.TRANSACTION_DATE, "Transaction Date", "Date the expense was incurred", FieldGroup.STAFF),
    (F.VENDOR_ID, "Vendor", "Vendor paid for the service", FieldGroup.STAFF),
    (F.CLIENT_NAME, "Client Name", "Client served (required by some vendors)", FieldGroup.STAFF),
    (F.VOUCHER_NUMBER, "Voucher Number", "Program voucher reference", FieldGroup.STAFF),
    (F.ENROLLMENT_DATE, "Enrollment Date", "Client enrollment date", FieldGroup.STAFF),
    (F.CLASS_START_DATE, "Class Start Date", "Training class start date", FieldGroup.STAFF),
    (F.PURCHASE_DATE, "Purchase Date", "Date of purchase", FieldGroup.STAFF),
    (F.PAYMENT_STATUS, "Payment Status", "Unpaid, Paid, or Void", FieldGroup.STAFF),
    (F.PROGRAM_EXPLANATION, "Program Explanation", "Why the expense was made", FieldGroup.STAFF),
    (F.FUNDING_DW, "DW", "Dislocated Worker funding", FieldGroup.STAFF),
    (F.FUNDING_DW_ADMIN, "DW Admin", "Dislocated Worker admin funding", FieldGroup.STAFF),
    (F.FUNDING_DW_SUS, "DW SUS", "Dislocated Worker supportive services funding", FieldGroup.STAFF),
    (F.FUNDING_ADULT, "Adult", "Adult program funding", FieldGroup.STAFF),
    (F.FUNDING_ADULT_ADMIN, "Adult Admin", "Adult program admin funding", FieldGroup.STAFF),
    (F.FUNDING_ADULT_SUS, "Adult SUS", "Adult supportive services funding", FieldGroup.STAFF),
    (F.FUNDING_RR, "RR", "Rapid Response funding", FieldGroup.STAFF),
    (F.FUNDING_H1B, "H1B", "H-1B grant funding", FieldGroup.STAFF),
    (F.FUNDING_YOUTH_IS, "Youth IS", "In-school youth funding", FieldGroup.STAFF),
    (F.FUNDING_YOUTH_OS, "Youth OS", "Out-of-school youth funding", FieldGroup.STAFF),
    (F.FUNDING_YOUTH_ADMIN, "Youth Admin", "Youth program admin funding", FieldGroup.STAFF),
]


# -- FINANCE SIDE --

FINANCE_FIELD_DEFINITIONS = [
    (F.FIN_VOUCHER_RECEIVED, "Voucher Received", "Whether finance received the voucher", FieldGroup.FINANCE),
    (F.FIN_ACCRUAL_DATE, "Accrual Date", "Finance accrual date", FieldGroup.FINANCE),
    (F.FIN_OBLIGATED_DATE, "Obligated Date", "Finance obligation date", FieldGroup.FINANCE),
    (F.FIN_COMMENTS, "Finance Comments", "Notes from finance processing", FieldGroup.FINANCE),
    (F.FIN_EXPENSE_CODE, "Expense Code", "Accounting expense code", FieldGroup.FINANCE),
]


FIELD_DEFINITIONS = STAFF_FIELD_DEFINITIONS + FINANCE_FIELD_DEFINITIONS

STAFF_FIELDS = frozenset(d[0] for d in STAFF_FIELD_DEFINITIONS)
FINANCE_FIELDS = frozenset(d[0] for d in FINANCE_FIELD_DEFINITIONS)
ALL_FIELDS = STAFF_FIELDS | FINANCE_FIELDS

FUNDING_FIELDS = tuple(d[0] for d in STAFF_FIELD_DEFINITIONS if d[0].value.startswith("funding_"))
