"""
Runtime Settings
================

Environment-driven configuration for the compliance records system.

Variables:
    GPSR_DATABASE_URL        SQLAlchemy URL (default: SQLite file in project root)
    GPSR_LOG_LEVEL           Logging level name for the CLI (default: WARNING)
    GPSR_HONOR_GRANTS        When true, approved grantees see full records
    GPSR_MAX_CATEGORY_DEPTH  Deepest category nesting the tree builder accepts
"""

import os
from dataclasses import dataclass

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_DB_PATH = os.path.join(PROJECT_ROOT, 'gpsr_records.db')

_TRUTHY = {'1', 'true', 'yes', 'on'}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = 'WARNING'
    honor_grants: bool = False
    max_category_depth: int = 32

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            database_url=os.environ.get('GPSR_DATABASE_URL', f"sqlite:///{DEFAULT_DB_PATH}"),
            log_level=os.environ.get('GPSR_LOG_LEVEL', 'WARNING').upper(),
            honor_grants=_env_bool('GPSR_HONOR_GRANTS'),
            max_category_depth=int(os.environ.get('GPSR_MAX_CATEGORY_DEPTH', '32')),
        )


settings = Settings.from_env()
