import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from models.audit_log import AuditLog
from fastapi import Request
from datetime import datetime
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


def log_audit_event(
    db: Session,
    action: str,
    signup_id: Optional[int] = None,
    login: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None
):
    """
    Log an audit event to the database.

    Args:
        db: Database session
        action: Type of action (e.g., 'signup_registered', 'otp_verified')
        signup_id: Signup record involved (if applicable)
        login: Trading login involved (if applicable)
        details: Additional context as a dictionary
        request: FastAPI request object (to extract IP and user agent)

    Audit failures are logged and never fail the request being audited.
    """
    ip_address = None
    user_agent = None

    if request:
        ip_address = request.client.host if request.client else None
        user_agent = request.headers.get("user-agent")

    audit_log = AuditLog(
        action=action,
        signup_id=signup_id,
        login=str(login) if login is not None else None,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
        timestamp=datetime.utcnow()
    )

    try:
        db.add(audit_log)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to write audit event {action}: {e}")


def log_login(
    db: Session,
    signup_id: Optional[int],
    success: bool,
    method: str,  # 'password', 'otp'
    login: Optional[str] = None,
    reason: Optional[str] = None,
    request: Optional[Request] = None
):
    """Log login attempts."""
    details = {"success": success, "method": method}
    if reason:
        details["reason"] = reason
    log_audit_event(
        db=db,
        action="login_attempt",
        signup_id=signup_id,
        login=login,
        details=details,
        request=request
    )
