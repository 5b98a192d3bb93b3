"""
Configuration constants for the application.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
env_path = Path(__file__).resolve().parent.parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "").strip().lower()

# Tokens whose email ends with this suffix belong to backend service accounts.
# Service accounts may read and write progression for any user.
SERVICE_ACCOUNT_EMAIL_SUFFIX = os.getenv("SERVICE_ACCOUNT_EMAIL_SUFFIX", "gserviceaccount.com").strip()

# Optional audience check for bearer tokens (empty = not enforced)
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "").strip()

# Milestone listing page size
MILESTONE_LIST_DEFAULT = int(os.getenv("MILESTONE_LIST_DEFAULT", "20"))
MILESTONE_LIST_MAX = int(os.getenv("MILESTONE_LIST_MAX", "50"))
