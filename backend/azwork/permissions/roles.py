# Overview: User roles and how legacy role names map onto them.

ROLE_KIOSK = "kiosk"
ROLE_STAFF = "staff"
ROLE_DIRECTOR = "director"
ROLE_ADMINISTRATOR = "administrator"

VALID_ROLES = [
    ROLE_KIOSK,
    ROLE_STAFF,
    ROLE_DIRECTOR,
    ROLE_ADMINISTRATOR,
]

# Older accounts carry the site-specific staff role names
LEGACY_ROLE_ALIASES = {
    "azwk_staff": ROLE_STAFF,
    "outside_staff": ROLE_STAFF,
}

# Roles that see every budget regardless of ownership
OVERSIGHT_ROLES = frozenset({ROLE_DIRECTOR, ROLE_ADMINISTRATOR})


def normalize_role(role):
    """Lower-case a role name and fold legacy aliases. Returns None for unknown roles."""
    if not role:
        return None
    role = str(role).strip().lower()
    role = LEGACY_ROLE_ALIASES.get(role, role)
    if role not in VALID_ROLES:
        return None
    return role
