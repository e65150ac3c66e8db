"""Declarative base shared by all database models."""

from datetime import datetime

import pytz
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def now_iso() -> str:
    """Current UTC time as an ISO format string."""
    return datetime.now(pytz.utc).isoformat(timespec="microseconds")
