from __future__ import annotations

import logging
from typing import Any, Mapping

from ..common.validators import require_non_negative_int
from ..core.constants import DEFAULT_STUDENT_QUOTA, DEFAULT_TEACHER_QUOTA
from ..core.enums import LeaveType, Role
from ..core.exceptions import AuthorizationError, ValidationError
from .model import LeaveQuota
from .repository import QuotaRepository

logger = logging.getLogger(__name__)


def fallback_quota(role: Role) -> LeaveQuota:
    """Hardcoded defaults used when nothing (or garbage) is stored."""
    role = require_applicant_role(role)
    if role == Role.TEACHER:
        return LeaveQuota(**DEFAULT_TEACHER_QUOTA)
    return LeaveQuota(**DEFAULT_STUDENT_QUOTA)


def require_applicant_role(role: Role | str) -> Role:
    try:
        r = Role(role)
    except ValueError:
        raise ValidationError(f"Unknown role: {role}")
    if not r.is_applicant:
        raise ValidationError("Leave quotas exist only for students and teachers")
    return r


class QuotaService:
    """Default yearly quotas per applicant role."""

    def __init__(self, quotas: QuotaRepository):
        self._quotas = quotas

    def get_default_quota(self, role: Role) -> LeaveQuota:
        role = require_applicant_role(role)
        fallback = fallback_quota(role)
        raw = self._quotas.get(role)
        if not raw:
            return fallback

        bad = LeaveQuota.invalid_fields(raw)
        if bad:
            logger.warning("Quota for %s has invalid fields %s, using defaults for them", role.value, bad)
        return LeaveQuota.from_mapping(raw, fallback=fallback)

    def list_default_quotas(self) -> dict[str, LeaveQuota]:
        return {r.value: self.get_default_quota(r) for r in (Role.STUDENT, Role.TEACHER)}

    def update_default_quota(self, *, current_role: Role, role: Role, quota: Mapping[str, Any]) -> LeaveQuota:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can edit leave quotas")

        role = require_applicant_role(role)
        values = {
            lt.value: require_non_negative_int(quota.get(lt.value), f"{lt.value.capitalize()} quota")
            for lt in LeaveType
        }
        new_quota = LeaveQuota(**values)
        self._quotas.save(role, new_quota)
        logger.info("Default %s leave quota updated: %s", role.value, new_quota.to_dict())
        return new_quota
