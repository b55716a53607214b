"""Configuration module for the Gen-Connect service.

This module provides centralized configuration management, including directory
paths, API server settings, authentication, and email delivery settings.
All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory (SQLite database lives here by default)
DATA_DIR_NAME = os.getenv("DATA_DIR_NAME", "data")
DATA_DIR = ROOT_DIR / DATA_DIR_NAME

# Email templates directory
EMAIL_TEMPLATE_DIR = Path(
    os.getenv("EMAIL_TEMPLATE_DIR", str(ROOT_DIR / "src" / "templates" / "emails"))
)

# --- Database Configuration ---

DATABASE_URL: str = os.getenv(
    "DATABASE_URL", f"sqlite:///{DATA_DIR}/genconnect.db"
)

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080,"
    "http://127.0.0.1:8080",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# Public origin of the website. Used to build invitation links and the
# dashboard links embedded in emails.
SITE_URL: str = os.getenv("SITE_URL", "https://bridge-to-stem.lovable.app").rstrip("/")

# --- Authentication Configuration ---

JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7))
)

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

# --- Email Configuration ---

# Resend API key. When unset, emails are logged and skipped.
RESEND_API_KEY: Optional[str] = os.getenv("RESEND_API_KEY")
RESEND_API_URL: str = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
EMAIL_FROM: str = os.getenv("EMAIL_FROM", "Gen-Connect <noreply@resend.dev>")
EMAIL_TIMEOUT_SECONDS: float = float(os.getenv("EMAIL_TIMEOUT_SECONDS", "10"))

# --- Logging Configuration ---

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
