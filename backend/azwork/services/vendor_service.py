# Overview: Service-layer operations for vendors; encapsulates business logic and database work.

"""
Vendor Service

WHY: Every allocation names the vendor being paid. Some vendors bill per
client, so the vendor carries client_name_required and the allocation
service asks get_client_name_requirement() before saving.

DESIGN:
- Vendor names are unique
- Deactivation is a soft delete (is_active=False, deleted_at set)
- Inactive vendors cannot be chosen for new or edited allocations
"""

from flask import current_app

from ..extensions import db
from ..models import Vendor
from ..validation import NotFoundError, ValidationError
from azwork.time_utils import utcnow


class VendorNotFoundError(NotFoundError):
    """Raised when a vendor is not found."""
    pass


class VendorValidationError(ValidationError):
    """Raised when vendor data fails validation."""
    pass


def _check_name_available(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Vendor).filter(db.func.lower(Vendor.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Vendor.id != exclude_id)
    if query.first():
        raise VendorValidationError(f"Vendor '{name}' already exists")


def create_vendor(
    *,
    name: str,
    client_name_required: bool = False,
    created_by_user_id: int | None = None,
) -> Vendor:
    """
    Create a new vendor.

    Raises:
        VendorValidationError: If the name is blank or already taken
    """
    if not name or not name.strip():
        raise VendorValidationError("Vendor name is required")
    name = name.strip()
    _check_name_available(name)

    vendor = Vendor(
        name=name,
        client_name_required=bool(client_name_required),
        is_active=True,
    )

    db.session.add(vendor)
    db.session.commit()

    current_app.logger.info("Vendor %s created by user %s", vendor.id, created_by_user_id)
    return vendor


def update_vendor(
    *,
    vendor_id: int,
    name: str | None = None,
    client_name_required: bool | None = None,
    updated_by_user_id: int | None = None,
) -> Vendor:
    """
    Update an existing vendor.

    Raises:
        VendorNotFoundError: If vendor not found
        VendorValidationError: If validation fails
    """
    vendor = get_vendor(vendor_id)
    if not vendor.is_active:
        raise VendorValidationError("Cannot update inactive vendor")

    if name is not None:
        name = name.strip()
        if not name:
            raise VendorValidationError("Vendor name cannot be empty")
        _check_name_available(name, exclude_id=vendor.id)
        vendor.name = name

    if client_name_required is not None:
        vendor.client_name_required = bool(client_name_required)

    db.session.commit()

    current_app.logger.info("Vendor %s updated by user %s", vendor.id, updated_by_user_id)
    return vendor


def get_vendor(vendor_id: int) -> Vendor:
    """
    Get a vendor by ID.

    Raises:
        VendorNotFoundError: If vendor not found
    """
    vendor = db.session.query(Vendor).filter_by(id=vendor_id).first()
    if not vendor:
        raise VendorNotFoundError(f"Vendor {vendor_id} not found")
    return vendor


def list_vendors(
    *,
    include_inactive: bool = False,
    search: str | None = None,
) -> list[Vendor]:
    """List vendors by name. Inactive vendors only when include_inactive."""
    query = db.session.query(Vendor)

    if not include_inactive:
        query = query.filter(Vendor.is_active.is_(True), Vendor.deleted_at.is_(None))

    if search:
        query = query.filter(Vendor.name.ilike(f"%{search}%"))

    return query.order_by(Vendor.name.asc()).all()


def deactivate_vendor(
    vendor_id: int,
    *,
    deactivated_by_user_id: int | None = None,
) -> Vendor:
    """
    Deactivate a vendor (soft delete).

    Existing allocations keep their vendor_id.

    Raises:
        VendorNotFoundError: If vendor not found
        VendorValidationError: If vendor already inactive
    """
    vendor = get_vendor(vendor_id)
    if not vendor.is_active:
        raise VendorValidationError("Vendor is already inactive")

    vendor.is_active = False
    vendor.deleted_at = utcnow()
    db.session.commit()

    current_app.logger.info("Vendor %s deactivated by user %s", vendor.id, deactivated_by_user_id)
    return vendor


def reactivate_vendor(
    vendor_id: int,
    *,
    reactivated_by_user_id: int | None = None,
) -> Vendor:
    """
    Reactivate an inactive vendor.

    Raises:
        VendorNotFoundError: If vendor not found
        VendorValidationError: If vendor already active
    """
    vendor = get_vendor(vendor_id)
    if vendor.is_active:
        raise VendorValidationError("Vendor is already active")

    vendor.is_active = True
    vendor.deleted_at = None
    db.session.commit()

    current_app.logger.info("Vendor %s reactivated by user %s", vendor.id, reactivated_by_user_id)
    return vendor


def get_client_name_requirement(vendor_id: int) -> bool:
    """
    Whether allocations against this vendor must carry a client name.

    Raises:
        ValidationError: If the vendor is unknown, inactive, or deleted
    """
    vendor = db.session.query(Vendor).filter(
        Vendor.id == vendor_id,
        Vendor.is_active.is_(True),
        Vendor.deleted_at.is_(None),
    ).first()
    if not vendor:
        raise ValidationError("Invalid or inactive vendor selected.")
    return bool(vendor.client_name_required)
