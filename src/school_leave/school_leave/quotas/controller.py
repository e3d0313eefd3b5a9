from __future__ import annotations

import logging
from functools import wraps

from flask import Flask, jsonify, request, session

from ..common.response import error_response, error_status, success_response
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify(error_response("Please sign in to continue")), 401
            if session.get("role") != Role.ADMIN.value:
                return jsonify(error_response("Admins only")), 403
            return view(*args, **kwargs)

        return wrapper

    @app.route("/admin/leave-quotas", methods=["GET"], endpoint="leave_quotas")
    @admin_required
    def leave_quotas():
        quotas = container.quota_service.list_default_quotas()
        return jsonify(success_response({role: q.to_dict() for role, q in quotas.items()}))

    @app.route("/admin/leave-quotas/<role>", methods=["PUT"], endpoint="update_leave_quota")
    @admin_required
    def update_leave_quota(role: str):
        try:
            quota = container.quota_service.update_default_quota(
                current_role=Role(session["role"]),
                role=role,
                quota=request.get_json(silent=True) or {},
            )
            return jsonify(success_response(quota.to_dict(), f"{role} leave quotas updated successfully!"))
        except DomainError as e:
            return jsonify(error_response(str(e))), error_status(e)
        except Exception:
            logger.exception("Updating %s leave quotas failed", role)
            return jsonify(error_response("Error updating leave quotas")), 500
