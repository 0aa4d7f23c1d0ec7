"""
Settings for the clinic scheduler, read from the environment.

A .env file (next to src/ or in the working directory) is loaded first,
except under pytest.
"""

import os
import pathlib
from decimal import Decimal

from dotenv import load_dotenv


# Tests configure the environment themselves
is_testing = os.getenv("PYTEST_VERSION") is not None

if not is_testing:
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # .env next to src/
        pathlib.Path.cwd() / ".env",  # .env in current directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def _get_bool(name: str, default: bool = False) -> bool:
    """Read a boolean flag such as "true"/"1"/"yes" from the environment."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "postgresql://localhost/clinic_scheduler_dev"
    )


DATABASE_URL = get_database_url()
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Billing
SESSION_PRICE = Decimal(os.getenv("SESSION_PRICE", "50.00"))
INVOICE_DUE_DAYS = int(os.getenv("INVOICE_DUE_DAYS", "30"))

# Clinic local time is a fixed UTC offset (France, winter time by default)
CLINIC_UTC_OFFSET_HOURS = int(os.getenv("CLINIC_UTC_OFFSET_HOURS", "1"))

# Hold a per-slot lock between availability check and insert
ENABLE_SLOT_LOCKING = _get_bool("ENABLE_SLOT_LOCKING", False)
