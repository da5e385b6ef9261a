# Overview: Flask API routes for budget operations; parses input and returns JSON responses.

"""
Budget Routes

SECURITY: All routes require a logged-in user. Which budgets come back is
decided by the visibility resolver; a budget outside it is reported as
403 for direct lookups.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..services import allocation_service, budget_service
from ..services.permission_service import PermissionDeniedError
from ..validation import NotFoundError, ValidationError
from azwork.time_utils import to_iso_date


budgets_bp = Blueprint("budgets", __name__, url_prefix="/api/budgets")


@budgets_bp.get("")
@require_actor
def list_budgets_route():
    """
    Budgets visible to the current user.

    Query parameters (all optional, all narrowing):
    - fiscal_year: YYYY or YYYY-MM-DD
    - grant_id, department_id, budget_id
    """
    try:
        filters = budget_service.parse_budget_filters(request.args)
        budgets = budget_service.resolve_visible_budgets(g.actor, filters)
        return jsonify({"items": [b.to_summary() for b in budgets], "count": len(budgets)})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list budgets")
        return jsonify({"error": "Failed to list budgets"}), 500


@budgets_bp.get("/fiscal-years")
@require_actor
def fiscal_years_route():
    years = budget_service.get_distinct_fiscal_years()
    return jsonify({"items": [to_iso_date(y) for y in years]})


@budgets_bp.get("/<int:budget_id>/allocations")
@require_actor
def budget_allocations_route(budget_id: int):
    try:
        items = allocation_service.list_allocations_for_budget(budget_id, g.actor)
        return jsonify({"items": items, "count": len(items)})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PermissionDeniedError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to list allocations for budget %s", budget_id)
        return jsonify({"error": "Failed to list allocations"}), 500


@budgets_bp.get("/<int:budget_id>/summary")
@require_actor
def budget_summary_route(budget_id: int):
    try:
        return jsonify(allocation_service.summarize_budget(budget_id, g.actor))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PermissionDeniedError as e:
        return jsonify({"error": "Permission denied", "message": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to summarize budget %s", budget_id)
        return jsonify({"error": "Failed to summarize budget"}), 500
