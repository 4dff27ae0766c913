import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./sap_awards.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Session cookie (admin login)
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "sap_awards_session")
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", str(24 * 60 * 60)))
SESSION_HTTPS_ONLY = os.getenv("SESSION_HTTPS_ONLY", "true" if IS_PRODUCTION else "false").lower() == "true"
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"

# Frontend base URL for links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
# Public base URL of this API (certificate download / verification links)
PUBLIC_API_URL = os.getenv("PUBLIC_API_URL", "http://localhost:8000")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:3000").split(",")
    if origin.strip()
]

# Redis (cache, rate limiting, arq worker)
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"

# "memory" keeps the cache process-local; "redis" shares it across instances
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "redis" if (REDIS_URL or REDIS_HOST) else "memory")
NOMINATIONS_CACHE_TTL = int(os.getenv("NOMINATIONS_CACHE_TTL", "300"))
CATEGORIES_CACHE_TTL = int(os.getenv("CATEGORIES_CACHE_TTL", "3600"))

# Outbox dispatch: "arq" hands events to the worker, "inline" runs them after the response
OUTBOX_DISPATCH = os.getenv("OUTBOX_DISPATCH", "arq" if (REDIS_URL or REDIS_HOST) else "inline")
OUTBOX_MAX_ATTEMPTS = int(os.getenv("OUTBOX_MAX_ATTEMPTS", "5"))
OUTBOX_BACKOFF_SECONDS = int(os.getenv("OUTBOX_BACKOFF_SECONDS", "30"))
OUTBOX_SWEEP_INTERVAL = int(os.getenv("OUTBOX_SWEEP_INTERVAL", "60"))
OUTBOX_SWEEPER_ENABLED = os.getenv("OUTBOX_SWEEPER_ENABLED", "true").lower() == "true"

# Email
# "auto" picks the first configured provider: resend, sendgrid, smtp
EMAIL_PROVIDER = os.getenv("EMAIL_PROVIDER", "auto").lower()
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "SAPHANIOX Awards <awards@saptechnologies.co.ug>")
EMAIL_REPLY_TO = os.getenv("EMAIL_REPLY_TO")
# Admin inbox for new nomination alerts
NOTIFY_EMAIL = os.getenv("NOTIFY_EMAIL")

# File storage
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
CERTIFICATES_DIR = os.getenv("CERTIFICATES_DIR", os.path.join(UPLOAD_DIR, "certificates"))
MAX_PHOTO_SIZE = int(os.getenv("MAX_PHOTO_SIZE", str(5 * 1024 * 1024)))
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").lower()

# Cloudflare R2 Configuration
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "sap-awards")
R2_PUBLIC_URL = os.getenv("R2_PUBLIC_URL")

# Awards
AWARD_YEAR = int(os.getenv("AWARD_YEAR", "2025"))
DEFAULT_NOMINEE_COUNTRY = os.getenv("DEFAULT_NOMINEE_COUNTRY", "Uganda")

# Rate limits (requests per window, per IP)
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
NOMINATION_RATE_LIMIT = int(os.getenv("NOMINATION_RATE_LIMIT", "5"))
NOMINATION_RATE_WINDOW = int(os.getenv("NOMINATION_RATE_WINDOW", "3600"))
VOTE_RATE_LIMIT = int(os.getenv("VOTE_RATE_LIMIT", "20"))
VOTE_RATE_WINDOW = int(os.getenv("VOTE_RATE_WINDOW", "3600"))
LOGIN_RATE_LIMIT = int(os.getenv("LOGIN_RATE_LIMIT", "10"))
LOGIN_RATE_WINDOW = int(os.getenv("LOGIN_RATE_WINDOW", "900"))
