"""
Runtime configuration for Wellcoach.

Settings are read from environment variables, optionally seeded from a
project-level .env file:

- WELLCOACH_PROGRESS_DB: path to the progress/submission ledger database
- WELLCOACH_CATALOG: path to the module catalog YAML
- WELLCOACH_USER_ID: learner identifier for single-user mode
- WELLCOACH_TIMEZONE: IANA timezone used for time-of-day and streak rules
- WELLCOACH_LOG_LEVEL: logging level name
"""

import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = Path.home() / ".wellcoach"
DEFAULT_PROGRESS_DB = DEFAULT_DATA_DIR / "progress.db"
DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "modules.yaml"
DEFAULT_USER_ID = "default"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    """Resolved runtime settings."""
    progress_db: Path = DEFAULT_PROGRESS_DB
    catalog_path: Path = DEFAULT_CATALOG_PATH
    user_id: str = DEFAULT_USER_ID
    timezone: Optional[str] = None
    log_level: str = "INFO"

    @property
    def tzinfo(self) -> Optional[tzinfo]:
        """Timezone for local-time achievement rules (None = use timestamps as stored)."""
        return ZoneInfo(self.timezone) if self.timezone else None


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Load settings from the environment.

    Args:
        env_file: Optional .env file (default: PROJECT_ROOT/.env). Values
            already present in the environment take precedence.

    Returns:
        Settings instance
    """
    load_dotenv(env_file or PROJECT_ROOT / ".env")

    return Settings(
        progress_db=Path(os.getenv("WELLCOACH_PROGRESS_DB", str(DEFAULT_PROGRESS_DB))).expanduser(),
        catalog_path=Path(os.getenv("WELLCOACH_CATALOG", str(DEFAULT_CATALOG_PATH))).expanduser(),
        user_id=os.getenv("WELLCOACH_USER_ID", DEFAULT_USER_ID),
        timezone=os.getenv("WELLCOACH_TIMEZONE") or None,
        log_level=os.getenv("WELLCOACH_LOG_LEVEL", "INFO").upper(),
    )
