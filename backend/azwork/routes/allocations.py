# Overview: Flask API routes for allocation operations; parses input and returns JSON responses.

"""
Allocation Routes

SECURITY: All routes require a logged-in user. Access decisions are made by
the allocation service from a fresh read of the budget; these routes only
translate its exceptions:

- NotFoundError -> 404
- PermissionDeniedError -> 403
- ConflictError -> 409
- ValidationError -> 400
- PersistenceError -> 500
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..services import allocation_service, budget_service
from ..services.concurrency import PersistenceError
from ..services.permission_service import PermissionDeniedError
from ..validation import ConflictError, NotFoundError, ValidationError, parse_positive_int


allocations_bp = Blueprint("allocations", __name__, url_prefix="/api/allocations")


@allocations_bp.get("")
@require_actor
def list_allocations_route():
    """
    Paginated allocations across visible budgets.

    Query parameters:
    - budget_id: "all" (default) or a budget id
    - fiscal_year, grant_id, department_id: narrowing filters
    - page (default 1), limit (default 25, capped)
    """
    try:
        filters = budget_service.parse_budget_filters({
            "fiscal_year": request.args.get("fiscal_year"),
            "grant_id": request.args.get("grant_id"),
            "department_id": request.args.get("department_id"),
        })
        page = parse_positive_int(request.args.get("page"), "page") or 1
        limit = parse_positive_int(request.args.get("limit"), "limit") or 25

        result = allocation_service.query_allocations(
            g.actor,
            filters,
            budget_selector=request.args.get("budget_id", "all"),
            page=page,
            limit=limit,
        )
        return jsonify(result)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list allocations")
        return jsonify({"error": "Failed to list allocations"}), 500


@allocations_bp.post("")
@require_actor
def create_allocation_route():
    """
    Add an allocation.

    Request body: {"budget_id": int, <allocation columns>...}
    Columns the user may not write are ignored.
    """
    data = request.get_json(silent=True) or {}

    budget_id = data.get("budget_id")
    if not isinstance(budget_id, int) or isinstance(budget_id, bool):
        return jsonify({"error": "budget_id is required"}), 400

    try:
        allocation = allocation_service.add_allocation(budget_id, data, g.actor)
        return jsonify(allocation_service.get_allocation_details(allocation.id, g.actor)), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PermissionDeniedError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PersistenceError as e:
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Failed to add allocation")
        return jsonify({"error": "Failed to add allocation"}), 500


@allocations_bp.get("/<int:allocation_id>")
@require_actor
def get_allocation_route(allocation_id: int):
    """Allocation with the current user's editable fields and row flags."""
    try:
        return jsonify(allocation_service.get_allocation_details(allocation_id, g.actor))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PermissionDeniedError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to load allocation %s", allocation_id)
        return jsonify({"error": "Failed to load allocation"}), 500


@allocations_bp.patch("/<int:allocation_id>")
@require_actor
def update_allocation_route(allocation_id: int):
    """
    Edit an allocation.

    Request body: any allocation columns. Columns outside the user's
    editable set (and Void, unless the user is a director) are ignored.
    """
    data = request.get_json(silent=True) or {}

    try:
        allocation = allocation_service.apply_update(allocation_id, data, g.actor)
        return jsonify(allocation_service.get_allocation_details(allocation.id, g.actor))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PermissionDeniedError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PersistenceError as e:
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Failed to update allocation %s", allocation_id)
        return jsonify({"error": "Failed to update allocation"}), 500


@allocations_bp.delete("/<int:allocation_id>")
@require_actor
def delete_allocation_route(allocation_id: int):
    """Soft delete an allocation."""
    try:
        allocation_service.soft_delete_allocation(allocation_id, g.actor)
        return jsonify({"message": "Allocation deleted", "id": allocation_id})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PermissionDeniedError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except PersistenceError as e:
        return jsonify({"error": str(e)}), 500
    except Exception:
        current_app.logger.exception("Failed to delete allocation %s", allocation_id)
        return jsonify({"error": "Failed to delete allocation"}), 500
