# Overview: Utility functions for allocation field lookups and validation.

from .definitions import FIELD_DEFINITIONS, AllocationField


def get_all_field_names():
    """Get list of all writable allocation column names."""
    return [d[0].value for d in FIELD_DEFINITIONS]


def get_fields_by_group(group):
    """Get all field definitions in a group."""
    return [d for d in FIELD_DEFINITIONS if d[3] == group]


def get_field_definition(name):
    """Get full definition for a field name."""
    for d in FIELD_DEFINITIONS:
        if d[0].value == name:
            return {
                "field": d[0].value,
                "label": d[1],
                "description": d[2],
                "group": d[3],
            }
    return None


def validate_field_name(name):
    """Check if a field name is a writable allocation column."""
    return name in get_all_field_names()


def submitted_fields(payload):
    """
    Map submitted keys onto known allocation fields.

    Keys that are not allocation columns (csrf tokens, action names,
    audit columns) are not fields and are left out.
    """
    fields = set()
    for key in payload or {}:
        if validate_field_name(key):
            fields.add(AllocationField(key))
    return fields


def field_names(fields):
    """Sorted column names for a set of AllocationField values."""
    return sorted(f.value for f in fields)
