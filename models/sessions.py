from core.database import Base
from sqlalchemy import Column, DateTime, String, Integer, ForeignKey
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin

class UserSession(Base, CreatedAtMixin):
    """
    One row per live refresh token.

    Only the SHA-256 of the refresh token is stored. Rows are deleted on
    logout, revocation and rotation; rows past expires_at are treated as
    absent and purged opportunistically.
    """
    __tablename__ = "sessions"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    user = relationship("User", back_populates="sessions")

    refresh_token_hash = Column(String(64), nullable=False, unique=True, index=True)
    user_agent = Column(String(512), nullable=True)
    ip = Column(String(64), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
