"""Configuration module for the SIS Portal backend.

This module provides centralized configuration management, including directory
paths, API server settings, session and invitation settings, grading policy,
and mail delivery. All configuration values can be overridden via environment
variables.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.parent.resolve()

# Data directory (SQLite database lives here by default)
DATA_DIR_NAME = os.getenv("DATA_DIR_NAME", "data")
DATA_DIR = ROOT_DIR / DATA_DIR_NAME

# --- Database Configuration ---

DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/sis.db")

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "3001"))

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# Public URL of the dashboard, used to build invitation links
FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

# --- Session Configuration ---

JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "sis-secret-key-change-in-production")
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "session")
SESSION_TTL_DAYS: int = int(os.getenv("SESSION_TTL_DAYS", "7"))
# Set to "true" when the API is served over HTTPS
SESSION_COOKIE_SECURE: bool = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

# --- Password Configuration ---

MIN_PASSWORD_LENGTH: int = int(os.getenv("MIN_PASSWORD_LENGTH", "8"))
# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

# --- Invitation Configuration ---

INVITATION_TTL_HOURS: int = int(os.getenv("INVITATION_TTL_HOURS", "24"))

# --- Grading Configuration ---

# How absent prelim/midterm/finals components are treated:
#   "zero"  - missing components count as 0
#   "block" - any missing component leaves the final grade pending
GRADE_MISSING_COMPONENT_POLICY: str = os.getenv(
    "GRADE_MISSING_COMPONENT_POLICY", "zero"
).lower()

# --- Pagination Configuration ---

DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))
AUDIT_DEFAULT_LIMIT: int = int(os.getenv("AUDIT_DEFAULT_LIMIT", "50"))

# --- Email Configuration ---

# "log" prints messages to the application log, "smtp" delivers them
EMAIL_BACKEND: str = os.getenv("EMAIL_BACKEND", "log").lower()
MAIL_SERVER: str = os.getenv("MAIL_SERVER", "localhost")
MAIL_PORT: int = int(os.getenv("MAIL_PORT", "587"))
MAIL_USERNAME: Optional[str] = os.getenv("MAIL_USERNAME")
MAIL_PASSWORD: Optional[str] = os.getenv("MAIL_PASSWORD")
MAIL_FROM: str = os.getenv("MAIL_FROM", "SIS Admin <noreply@sis.local>")

# --- Logging Configuration ---

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT: str = os.getenv("LOG_FORMAT", "text")  # "json" or "text"

# --- Seed Configuration ---

SEED_ADMIN_EMAIL: str = os.getenv("SEED_ADMIN_EMAIL", "admin@sis.com")
SEED_ADMIN_PASSWORD: str = os.getenv("SEED_ADMIN_PASSWORD", "admin1234")
SEED_ENCODER_EMAIL: str = os.getenv("SEED_ENCODER_EMAIL", "encoder@sis.com")
SEED_ENCODER_PASSWORD: str = os.getenv("SEED_ENCODER_PASSWORD", "encoder123")


def get_invite_url(token: str) -> str:
    """Build the dashboard link a new account holder follows to set a password."""
    return f"{FRONTEND_URL.rstrip('/')}/verify-invite?token={token}"
