"""
PATH: users/services/audit.py

Login audit + account approval services.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from users.models import LoginAudit, User

logger = logging.getLogger(__name__)


class ApprovalError(Exception):
    pass


def client_ip(request) -> str | None:
    forwarded = (request.META.get("HTTP_X_FORWARDED_FOR") or "").strip()
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.META.get("REMOTE_ADDR") or None


def record_login_attempt(
    request,
    *,
    email: str,
    user=None,
    success: bool,
    failure_reason: str = "",
    age_verified: bool = False,
) -> LoginAudit:
    audit = LoginAudit.objects.create(
        user=user,
        email=(email or "")[:254],
        success=success,
        failure_reason=failure_reason,
        age_verified=age_verified,
        ip_address=client_ip(request),
        user_agent=(request.META.get("HTTP_USER_AGENT") or "")[:1000],
    )
    if not success:
        logger.info(
            "Login failed",
            extra={"email": audit.email, "reason": failure_reason, "ip": audit.ip_address},
        )
    return audit


@transaction.atomic
def set_approval(user: User, *, status: str, actor: User) -> User:
    if status not in {User.APPROVAL_APPROVED, User.APPROVAL_REJECTED, User.APPROVAL_PENDING}:
        raise ApprovalError(f"Unknown approval status: {status}")
    if user.pk == actor.pk and status != User.APPROVAL_APPROVED:
        raise ApprovalError("You cannot revoke your own approval.")

    user.approval_status = status
    if status == User.APPROVAL_APPROVED:
        user.approved_at = timezone.now()
        user.approved_by = actor
    else:
        user.approved_at = None
        user.approved_by = None
    user.save(update_fields=["approval_status", "approved_at", "approved_by", "updated_at"])

    logger.info(
        "User approval changed",
        extra={"user_id": str(user.pk), "status": status, "actor_id": str(actor.pk)},
    )
    return user
