from core.database import Base
from sqlalchemy import Column, Integer, String, JSON
from models.mixins import CreatedAtMixin

class AuditLog(Base, CreatedAtMixin):
    __tablename__ = "audit_logs"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    actor_id = Column(Integer, nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    entity = Column(String(64), nullable=False)
    entity_id = Column(String(64), nullable=True)
    meta = Column(JSON, nullable=True)
    ip = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    request_id = Column(String(64), nullable=True)
