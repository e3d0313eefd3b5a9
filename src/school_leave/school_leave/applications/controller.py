from __future__ import annotations

import logging
from functools import wraps

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_iso_date
from ..common.response import error_response, error_status, success_response
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError, InsufficientBalanceError, ValidationError
from ..quotas.model import LeaveBalance
from .model import LeaveApplication

logger = logging.getLogger(__name__)


def balance_json(balance: LeaveBalance | None) -> dict | None:
    return balance.to_dict() if balance is not None else None


def application_json(a: LeaveApplication) -> dict:
    return {
        "id": a.application_id,
        "date_bucket": a.date_bucket,
        "applicant_id": a.applicant_id,
        "applicant_type": a.applicant_type.value,
        "applicant_name": a.applicant_name,
        "leave_type": a.leave_type.value,
        "start_date": a.start_date.strftime("%Y-%m-%d"),
        "end_date": a.end_date.strftime("%Y-%m-%d"),
        "duration": a.duration,
        "reason": a.reason,
        "status": a.status.value,
        "processed": a.processed,
        "created_at": a.created_at.isoformat(),
        "updated_at": a.updated_at.isoformat(),
        "balance_before": balance_json(a.balance_before),
        "balance_after": balance_json(a.balance_after),
        "reviewed_by": a.reviewed_by,
        "reviewed_at": a.reviewed_at.isoformat() if a.reviewed_at else None,
    }


def fail(exc: DomainError):
    body = error_response(str(exc))
    if isinstance(exc, InsufficientBalanceError):
        body["data"] = {"leave_type": exc.leave_type, "remaining": exc.remaining, "requested": exc.requested}
    return jsonify(body), error_status(exc)


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify(error_response("Please sign in to continue")), 401
            return view(*args, **kwargs)

        return wrapper

    def applicant_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify(error_response("Please sign in to continue")), 401
            if session.get("role") not in {Role.STUDENT.value, Role.TEACHER.value}:
                return jsonify(error_response("Only students and teachers have leave balances")), 403
            return view(*args, **kwargs)

        return wrapper

    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify(error_response("Please sign in to continue")), 401
            if session.get("role") != Role.ADMIN.value:
                return jsonify(error_response("Admins only")), 403
            return view(*args, **kwargs)

        return wrapper

    def _parse_date(v: str):
        try:
            return parse_iso_date(v)
        except (TypeError, ValueError):
            raise ValidationError("Dates must be in YYYY-MM-DD format")

    @app.route("/leaves/balance", methods=["GET"], endpoint="leave_balance")
    @applicant_required
    def leave_balance():
        try:
            leave_session = container.open_session(
                applicant_id=str(session["user_id"]), role=Role(session["role"]), watch=False
            )
            used = container.application_service.used_leave_summary(applicant_id=leave_session.applicant_id)
            return jsonify(success_response({"balance": balance_json(leave_session.balance), "used": used.to_dict()}))
        except DomainError as e:
            return fail(e)
        except Exception:
            logger.exception("Loading leave balance failed")
            return jsonify(error_response("System error while loading leave balance")), 500

    @app.route("/leaves", methods=["GET"], endpoint="my_leaves")
    @login_required
    def my_leaves():
        try:
            apps = container.application_service.list_for_applicant(applicant_id=str(session["user_id"]))
            return jsonify(success_response([application_json(a) for a in apps]))
        except Exception:
            logger.exception("Loading leave applications failed")
            return jsonify(error_response("Error loading leave applications")), 500

    @app.route("/leaves", methods=["POST"], endpoint="submit_leave")
    @applicant_required
    def submit_leave():
        payload = request.get_json(silent=True) or request.form
        try:
            ref = container.application_service.submit(
                current_role=Role(session["role"]),
                applicant_id=str(session["user_id"]),
                applicant_name=session.get("name"),
                leave_type=payload.get("leave_type", ""),
                start_date=_parse_date(payload.get("start_date")),
                end_date=_parse_date(payload.get("end_date")),
                reason=payload.get("reason", ""),
            )
            data = {"id": ref.application_id, "date_bucket": ref.date_bucket}
            return jsonify(success_response(data, "Leave application submitted successfully!")), 201
        except DomainError as e:
            return fail(e)
        except Exception:
            logger.exception("Submitting leave application failed")
            return jsonify(error_response("Failed to submit leave application")), 500

    @app.route("/leaves/process", methods=["POST"], endpoint="process_my_leaves")
    @applicant_required
    def process_my_leaves():
        try:
            result = container.processing_engine.process_pending_for_applicant(
                applicant_id=str(session["user_id"]), role=Role(session["role"])
            )
            data = {
                "balance": balance_json(result.balance),
                "processed": [r.application_id for r in result.processed],
                "skipped": [{"id": r.application_id, "reason": o.value} for r, o in result.skipped],
            }
            return jsonify(success_response(data, "Leaves updated"))
        except DomainError as e:
            return fail(e)
        except Exception:
            logger.exception("Processing approved leaves failed")
            return jsonify(error_response("Failed to update leave balance")), 500

    @app.route("/admin/leaves/pending", methods=["GET"], endpoint="admin_pending_leaves")
    @admin_required
    def admin_pending_leaves():
        try:
            apps = container.application_service.list_pending(current_role=Role(session["role"]))
            return jsonify(success_response([application_json(a) for a in apps]))
        except DomainError as e:
            return fail(e)
        except Exception:
            logger.exception("Loading pending leave applications failed")
            return jsonify(error_response("Error loading leave applications")), 500

    def _review(bucket: str, application_id: str, approve: bool):
        svc = container.application_service
        action = svc.approve if approve else svc.reject
        try:
            action(
                current_role=Role(session["role"]),
                reviewer_id=str(session["user_id"]),
                application_id=application_id,
                date_bucket=bucket,
            )
            verb = "approved" if approve else "rejected"
            return jsonify(success_response({"id": application_id, "status": verb}, f"Leave application {verb} successfully"))
        except DomainError as e:
            return fail(e)
        except Exception:
            logger.exception("Reviewing leave application %s/%s failed", bucket, application_id)
            return jsonify(error_response("Error updating leave application")), 500

    @app.route("/admin/leaves/<bucket>/<application_id>/approve", methods=["POST"], endpoint="approve_leave")
    @admin_required
    def approve_leave(bucket: str, application_id: str):
        return _review(bucket, application_id, approve=True)

    @app.route("/admin/leaves/<bucket>/<application_id>/reject", methods=["POST"], endpoint="reject_leave")
    @admin_required
    def reject_leave(bucket: str, application_id: str):
        return _review(bucket, application_id, approve=False)
