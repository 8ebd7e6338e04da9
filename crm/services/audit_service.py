"""Audit service — append-only trail of account events."""

import json
from typing import Optional, Any, Dict

from fastapi import Request
from sqlalchemy.orm import Session

from crm.models import AuditLog


class AuditService:
    """Records immutable audit log entries for account events."""

    @staticmethod
    def log(
        db: Session,
        action: str,
        actor_id: Optional[int] = None,
        actor_email: Optional[str] = None,
        target_user_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """Write a single audit log record.

        Args:
            action: e.g. "user.login", "user.invited", "user.password_reset"

        Commits immediately so the entry survives a later failure in the request.
        """
        entry = AuditLog(
            actor_id=actor_id,
            actor_email=actor_email,
            action=action,
            target_user_id=target_user_id,
            details_json=json.dumps(details, default=str) if details else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(entry)
        db.commit()
        return entry

    @staticmethod
    def log_from_request(
        db: Session,
        request: Request,
        action: str,
        actor_id: Optional[int] = None,
        actor_email: Optional[str] = None,
        target_user_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """Write audit log extracting IP and user-agent from the request."""
        ip = request.client.host if request.client else None
        ua = request.headers.get("user-agent", "")[:500]
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            details = {**(details or {}), "request_id": request_id}
        return AuditService.log(
            db=db,
            action=action,
            actor_id=actor_id,
            actor_email=actor_email,
            target_user_id=target_user_id,
            details=details,
            ip_address=ip,
            user_agent=ua,
        )


audit_service = AuditService()
