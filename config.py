"""
Configuration settings for the academic-warning report service.
Supports both development and production environments via environment variables.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

# ============================================================================
# Paths
# ============================================================================
BASE_DIR = Path(__file__).parent
LOGS_DIR = BASE_DIR / "logs"

# ============================================================================
# Database Configuration (primary store)
# ============================================================================
_raw_url = os.getenv(
    "DATABASE_URL",
    "sqlite:///./warning_tracker.db"
)
# SQLAlchemy 2 loads dialect "postgresql", not "postgres"; normalize Heroku-style URLs
if _raw_url.startswith("postgres://"):
    DATABASE_URL = "postgresql://" + _raw_url[len("postgres://"):]
else:
    DATABASE_URL = _raw_url
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))

# Requests to the primary store that exceed this are treated as "store unavailable"
STORE_REQUEST_TIMEOUT_SECONDS = int(os.getenv("STORE_REQUEST_TIMEOUT_SECONDS", "5"))
# How long the failover store keeps answering from the fallback before probing the primary again
STORE_REPROBE_SECONDS = int(os.getenv("STORE_REPROBE_SECONDS", "30"))

# ============================================================================
# Local fallback store
# ============================================================================
USE_LOCAL_FALLBACK = os.getenv("USE_LOCAL_FALLBACK", "true").lower() == "true"
# JSON file backing the fallback store; empty means keep it in memory only
LOCAL_STORE_PATH = os.getenv("LOCAL_STORE_PATH", str(BASE_DIR / "local_store.json"))

# ============================================================================
# Notifications
# ============================================================================
NOTIFICATION_RETENTION_LIMIT = int(os.getenv("NOTIFICATION_RETENTION_LIMIT", "50"))
NOTIFICATION_PREVIEW_LENGTH = int(os.getenv("NOTIFICATION_PREVIEW_LENGTH", "50"))
# Clients refresh the bell on this interval; it is also the staleness bound of the feed
NOTIFICATION_POLL_INTERVAL_SECONDS = int(os.getenv("NOTIFICATION_POLL_INTERVAL_SECONDS", "30"))
DEFAULT_CAMPUS = os.getenv("DEFAULT_CAMPUS", "HN")

# ============================================================================
# Security Configuration
# ============================================================================
SECRET_KEY = os.getenv("SECRET_KEY", "change-this-secret-key-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24 hours

# CORS Settings - include your frontend origin (e.g. Vite default 5173)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173").split(",") if o.strip()]
CORS_ALLOW_CREDENTIALS = True

# ============================================================================
# Application Settings
# ============================================================================
APP_NAME = os.getenv("APP_NAME", "Academic Warning Tracker API")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")  # development, staging, production
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", str(LOGS_DIR / "app.log"))
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024)))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

# ============================================================================
# Global Instances (initialized at startup)
# ============================================================================
# Database instance (initialized in app.py)
db: Optional[object] = None

# Store answering report/log/notification calls (failover over db + local fallback)
store: Optional[object] = None

# Services
notifications: Optional[object] = None
repository: Optional[object] = None
audit: Optional[object] = None
versioning: Optional[object] = None
lifecycle: Optional[object] = None
student_affairs: Optional[object] = None
