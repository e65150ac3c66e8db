"""Invitation database model.

This module defines the Invitation database model using SQLAlchemy.
"""

import uuid

from sqlalchemy import Column, ForeignKey, String

from .base import Base, now_iso


class InvitationModel(Base):
    """Invitation database model."""

    __tablename__ = "invitations"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    token = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, index=True, nullable=False)
    role = Column(String, nullable=False)  # role granted on completion
    created_by = Column(
        String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(String, nullable=False, default=now_iso)  # ISO format string
    expires_at = Column(String, nullable=False)  # ISO format string
