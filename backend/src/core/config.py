"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use by the billing ledger and analytics engine.
"""

import os
import pathlib
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or any("pytest" in str(frame) for frame in __import__('inspect').stack(0))

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    # Try multiple possible locations for .env file
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env (when run from backend/src)
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # .env at repository root
        pathlib.Path.cwd() / ".env",  # .env in current directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

# Practice management API (sessions, payments, patients)
PRACTICE_API_BASE_URL = os.getenv("PRACTICE_API_BASE_URL", "http://localhost:3000/api")
PRACTICE_API_TOKEN = os.getenv("PRACTICE_API_TOKEN", "")
PRACTICE_API_TIMEOUT_SECONDS = float(os.getenv("PRACTICE_API_TIMEOUT_SECONDS", "10"))

# Practice timezone as a fixed UTC offset (Argentina by default)
PRACTICE_UTC_OFFSET_HOURS = int(os.getenv("PRACTICE_UTC_OFFSET_HOURS", "-3"))

# Ledger listing
LEDGER_PAGE_SIZE = int(os.getenv("LEDGER_PAGE_SIZE", "10"))
LEDGER_BATCH_SIZE = int(os.getenv("LEDGER_BATCH_SIZE", "10"))
LEDGER_LOOKBACK_MONTHS = int(os.getenv("LEDGER_LOOKBACK_MONTHS", "3"))

# UX smoothing delays (advisory only, synchronous callers bypass them)
SEARCH_DEBOUNCE_MS = int(os.getenv("SEARCH_DEBOUNCE_MS", "300"))
LOAD_MORE_DELAY_MS = int(os.getenv("LOAD_MORE_DELAY_MS", "500"))

# Analytics refresh
ANALYTICS_PAYMENTS_LIMIT = int(os.getenv("ANALYTICS_PAYMENTS_LIMIT", "1000"))
