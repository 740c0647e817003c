import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./venuehq.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Frontend base URL for redirects and links in messages
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
# Public base URL used when building short links
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

# Venue
VENUE_NAME = os.getenv("VENUE_NAME", "The Anchor")
VENUE_TIMEZONE = os.getenv("VENUE_TIMEZONE", "Europe/London")
VENUE_CONTACT_PHONE = os.getenv("VENUE_CONTACT_PHONE", "01753 682707")

# Table bookings
RESTAURANT_CAPACITY = int(os.getenv("RESTAURANT_CAPACITY", "50"))
SLOT_INTERVAL_MINUTES = 30
DEFAULT_BOOKING_DURATION_MINUTES = 120
DEPOSIT_PER_PERSON = float(os.getenv("DEPOSIT_PER_PERSON", "5"))
MANAGE_BOOKING_TOKEN_MAX_AGE = int(os.getenv("MANAGE_BOOKING_TOKEN_MAX_AGE", str(60 * 60 * 24 * 30)))

# Twilio SMS Configuration
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER")

# SMS safety limits
SMS_GLOBAL_HOURLY_LIMIT = int(os.getenv("SMS_GLOBAL_HOURLY_LIMIT", "120"))
SMS_RECIPIENT_HOURLY_LIMIT = int(os.getenv("SMS_RECIPIENT_HOURLY_LIMIT", "3"))
SMS_RECIPIENT_DAILY_LIMIT = int(os.getenv("SMS_RECIPIENT_DAILY_LIMIT", "8"))
SMS_DEDUPE_WINDOW_HOURS = int(os.getenv("SMS_DEDUPE_WINDOW_HOURS", "24"))

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "VenueHQ <noreply@venuehq.co.uk>")

# Stripe Configuration (REST API, no SDK)
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "gbp")

# Redis (rate limiting, cache, background jobs)
REDIS_URL = os.getenv("REDIS_URL")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"

# CORS
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]
