# Overview: Value constants shared by the allocation permission rules.


class FieldGroup:
    """Allocation column groups used for edit masks and UI display."""
    STAFF = "STAFF"
    FINANCE = "FINANCE"


class BudgetType:
    """Budget pools: Staff budgets belong to one staff member, Admin budgets to Finance."""
    STAFF = "Staff"
    ADMIN = "Admin"

    ALL = (STAFF, ADMIN)


class PaymentStatus:
    """
    Allocation payment states.

    Unpaid <-> Paid, either -> Void. Void is terminal.
    """
    UNPAID = "Unpaid"
    PAID = "Paid"
    VOID = "Void"

    ALL = (UNPAID, PAID, VOID)

    # Short codes posted by the allocation forms
    ALIASES = {
        "U": UNPAID,
        "P": PAID,
    }

    @classmethod
    def normalize(cls, value):
        """Map a submitted status (including U/P shorthands) to its canonical value, or None."""
        if value is None:
            return None
        raw = str(value).strip()
        if raw in cls.ALIASES:
            return cls.ALIASES[raw]
        for status in cls.ALL:
            if raw.lower() == status.lower():
                return status
        return None
