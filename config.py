import os
from dotenv import load_dotenv

# Load .env
load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///taskreward.db")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Daily commission schedule: credits become due once per day after the reset time
PLATFORM_TIMEZONE = os.getenv("PLATFORM_TIMEZONE", "Asia/Kolkata")
COMMISSION_RESET_TIME = os.getenv("COMMISSION_RESET_TIME", "00:00")

# Platform admins allowed to assign level overrides
ADMINS = [email.strip().lower() for email in os.getenv("ADMINS", "").split(",") if email.strip()]
