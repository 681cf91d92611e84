import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./daycare.db")
# Optional restricted role for request-scoped sessions (subject to row-level security).
# Falls back to DATABASE_URL when unset.
SESSION_DATABASE_URL = os.getenv("SESSION_DATABASE_URL")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH")

# Cloudflare R2 Configuration (pet photo storage)
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "pet-images")

# Session cookie issued after the identity provider sign-in
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")
SESSION_COOKIE_MAX_AGE_DAYS = int(os.getenv("SESSION_COOKIE_MAX_AGE_DAYS", "5"))
SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true"

# Public base URL of the web app (used in email links and auth redirects)
SITE_URL = os.getenv("SITE_URL", "http://localhost:3000").rstrip("/")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv(
    "EMAIL_FROM_ADDRESS", "Bonnie's Dog Daycare <bookings@bonniesdogdaycare.co.uk>"
)
# Business inbox: receives admin notifications and is used as reply-to on client emails
ADMIN_NOTIFICATION_EMAIL = os.getenv("ADMIN_NOTIFICATION_EMAIL")

BUSINESS_NAME = os.getenv("BUSINESS_NAME", "Bonnie's Dog Daycare")
# Availability rules are written in the business's wall-clock time
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "Europe/London")

# Longest date range accepted by the available-slots endpoint
MAX_SLOT_RANGE_DAYS = int(os.getenv("MAX_SLOT_RANGE_DAYS", "93"))

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
