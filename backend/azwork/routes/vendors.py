# Overview: Flask API routes for vendor operations; parses input and returns JSON responses.

"""
Vendor Routes

SECURITY: All routes require a logged-in user.
- Listing is open to any logged-in user (allocation forms need it)
- Create/update/deactivate/reactivate require director or administrator
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_actor, require_roles
from ..permissions import ROLE_ADMINISTRATOR, ROLE_DIRECTOR
from ..services import vendor_service
from ..services.vendor_service import VendorNotFoundError, VendorValidationError


vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


@vendors_bp.get("")
@require_actor
def list_vendors_route():
    """
    List vendors.

    Query parameters:
    - include_inactive: Include inactive vendors (default: false)
    - search: Search term for name
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    search = request.args.get("search")

    vendors = vendor_service.list_vendors(
        include_inactive=include_inactive,
        search=search,
    )

    return jsonify({
        "items": [v.to_dict() for v in vendors],
        "count": len(vendors),
    })


@vendors_bp.post("")
@require_actor
@require_roles(ROLE_DIRECTOR, ROLE_ADMINISTRATOR)
def create_vendor_route():
    """
    Create a new vendor.

    Request body:
    {
        "name": "Vendor Name",           // required
        "client_name_required": false    // optional
    }
    """
    data = request.get_json(silent=True) or {}

    name = data.get("name")
    if not name:
        return jsonify({"error": "name is required"}), 400

    try:
        vendor = vendor_service.create_vendor(
            name=name,
            client_name_required=_parse_bool(data.get("client_name_required")),
            created_by_user_id=g.actor.user_id,
        )
        return jsonify(vendor.to_dict()), 201
    except VendorValidationError as e:
        return jsonify({"error": str(e)}), 400


@vendors_bp.put("/<int:vendor_id>")
@require_actor
@require_roles(ROLE_DIRECTOR, ROLE_ADMINISTRATOR)
def update_vendor_route(vendor_id: int):
    data = request.get_json(silent=True) or {}

    client_name_required = None
    if "client_name_required" in data:
        client_name_required = _parse_bool(data.get("client_name_required"))

    try:
        vendor = vendor_service.update_vendor(
            vendor_id=vendor_id,
            name=data.get("name"),
            client_name_required=client_name_required,
            updated_by_user_id=g.actor.user_id,
        )
        return jsonify(vendor.to_dict())
    except VendorNotFoundError:
        return jsonify({"error": "Vendor not found"}), 404
    except VendorValidationError as e:
        return jsonify({"error": str(e)}), 400


@vendors_bp.delete("/<int:vendor_id>")
@require_actor
@require_roles(ROLE_DIRECTOR, ROLE_ADMINISTRATOR)
def deactivate_vendor_route(vendor_id: int):
    """Deactivate (soft delete) a vendor."""
    try:
        vendor = vendor_service.deactivate_vendor(
            vendor_id,
            deactivated_by_user_id=g.actor.user_id,
        )
        return jsonify(vendor.to_dict())
    except VendorNotFoundError:
        return jsonify({"error": "Vendor not found"}), 404
    except VendorValidationError as e:
        return jsonify({"error": str(e)}), 400


@vendors_bp.post("/<int:vendor_id>/reactivate")
@require_actor
@require_roles(ROLE_DIRECTOR, ROLE_ADMINISTRATOR)
def reactivate_vendor_route(vendor_id: int):
    try:
        vendor = vendor_service.reactivate_vendor(
            vendor_id,
            reactivated_by_user_id=g.actor.user_id,
        )
        return jsonify(vendor.to_dict())
    except VendorNotFoundError:
        return jsonify({"error": "Vendor not found"}), 404
    except VendorValidationError as e:
        return jsonify({"error": str(e)}), 400
