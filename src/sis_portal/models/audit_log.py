import uuid

from sqlalchemy import Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class AuditLogModel(Base):
    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(
        String, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True
    )
    action = Column(String, nullable=False)  # e.g. 'UPDATE_GRADE'
    entity = Column(String, nullable=False)  # e.g. 'Grade'
    entity_id = Column(String, index=True, nullable=False)
    details = Column(Text, nullable=True)  # JSON string
    created_at = Column(String, index=True, nullable=False, default=now_iso)

    user = relationship("UserModel")
