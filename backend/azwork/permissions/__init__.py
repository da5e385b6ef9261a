# Overview: Allocation permission package.
# Re-exports all public APIs for convenient imports.

from .categories import BudgetType, FieldGroup, PaymentStatus
from .definitions import (
    AllocationField,
    FIELD_DEFINITIONS,
    STAFF_FIELD_DEFINITIONS,
    FINANCE_FIELD_DEFINITIONS,
    STAFF_FIELDS,
    FINANCE_FIELDS,
    ALL_FIELDS,
    FUNDING_FIELDS,
)
from .roles import (
    ROLE_KIOSK,
    ROLE_STAFF,
    ROLE_DIRECTOR,
    ROLE_ADMINISTRATOR,
    VALID_ROLES,
    normalize_role,
)
from .helpers import (
    get_all_field_names,
    get_fields_by_group,
    get_field_definition,
    validate_field_name,
    submitted_fields,
    field_names,
)
from .policy import (
    ActorContext,
    can_view,
    can_add,
    can_access_for_edit,
    editable_fields,
    can_delete,
    can_void,
)

__all__ = [
    "BudgetType",
    "FieldGroup",
    "PaymentStatus",
    "AllocationField",
    "FIELD_DEFINITIONS",
    "STAFF_FIELD_DEFINITIONS",
    "FINANCE_FIELD_DEFINITIONS",
    "STAFF_FIELDS",
    "FINANCE_FIELDS",
    "ALL_FIELDS",
    "FUNDING_FIELDS",
    "ROLE_KIOSK",
    "ROLE_STAFF",
    "ROLE_DIRECTOR",
    "ROLE_ADMINISTRATOR",
    "VALID_ROLES",
    "normalize_role",
    "get_all_field_names",
    "get_fields_by_group",
    "get_field_definition",
    "validate_field_name",
    "submitted_fields",
    "field_names",
    "ActorContext",
    "can_view",
    "can_add",
    "can_access_for_edit",
    "editable_fields",
    "can_delete",
    "can_void",
]
