from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    action = Column(String(64), nullable=False, index=True)  # e.g., 'signup_registered', 'otp_verified'
    signup_id = Column(Integer, ForeignKey("user_signups.id"), nullable=True, index=True)
    login = Column(String(32), nullable=True, index=True)  # Trading login involved, if any
    details = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(255), nullable=True)

    signup = relationship("UserSignup")
