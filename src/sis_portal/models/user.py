"""User database model.

This module defines the User database model using SQLAlchemy.
"""

import uuid

from sqlalchemy import Boolean, Column, String

from .base import Base, now_iso


class UserModel(Base):
    """User database model."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False)  # 'admin', 'encoder', or 'student'
    is_active = Column(Boolean, nullable=False, default=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    created_at = Column(String, nullable=False, default=now_iso)  # ISO format string
