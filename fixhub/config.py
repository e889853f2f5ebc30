import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./fixhub.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Session and one-time token lifetimes
JWT_LIFETIME_MINUTES = int(os.getenv("JWT_LIFETIME_MINUTES", "1440"))
VERIFICATION_TOKEN_TTL_HOURS = int(os.getenv("VERIFICATION_TOKEN_TTL_HOURS", "24"))
PASSWORD_RESET_TTL_MINUTES = int(os.getenv("PASSWORD_RESET_TTL_MINUTES", "30"))

# Frontend base URL for links in emails and checkout redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "FixHub <noreply@fixhub.app>")

# PayMongo checkout configuration
PAYMONGO_SECRET_KEY = os.getenv("PAYMONGO_SECRET_KEY")
PAYMONGO_WEBHOOK_SECRET = os.getenv("PAYMONGO_WEBHOOK_SECRET")
PAYMONGO_API_URL = os.getenv("PAYMONGO_API_URL", "https://api.paymongo.com/v1")
# Seconds before a gateway call is abandoned and surfaced as retryable
PAYMENT_GATEWAY_TIMEOUT = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT", "15"))
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "PHP")

# S3-compatible media store (avatars, service photos)
MEDIA_ENDPOINT_URL = os.getenv("MEDIA_ENDPOINT_URL")
MEDIA_ACCESS_KEY_ID = os.getenv("MEDIA_ACCESS_KEY_ID")
MEDIA_SECRET_ACCESS_KEY = os.getenv("MEDIA_SECRET_ACCESS_KEY")
MEDIA_BUCKET_NAME = os.getenv("MEDIA_BUCKET_NAME", "fixhub-media")
MEDIA_PUBLIC_BASE_URL = os.getenv("MEDIA_PUBLIC_BASE_URL")
