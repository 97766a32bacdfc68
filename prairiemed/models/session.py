"""Refresh session model: one row per issued refresh token."""
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from prairiemed.core.database import Base
from prairiemed.models.base import new_uuid
from prairiemed.utils.helpers import utcnow


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    refresh_jti = Column(String(64), nullable=False, unique=True, index=True)
    # Naive UTC, decoded from the signed refresh token
    refresh_expires_at = Column(DateTime, nullable=False)

    # Session metadata
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    # Revocation
    revoked = Column(Boolean, default=False, nullable=False, index=True)
    revoked_at = Column(DateTime, nullable=True)
    revoked_reason = Column(String(255), nullable=True)

    user = relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<AuthSession user={self.user_id} jti={self.refresh_jti} revoked={self.revoked}>"
