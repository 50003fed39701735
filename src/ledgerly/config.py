"""Environment-driven settings."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_MAX_PROJECTION_PERIODS = 1200
DEFAULT_SPARKLINE_POINTS = 10


def _env_int(name: str, default: int) -> int:
    """Read a positive integer environment variable."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{value}'")
    if parsed <= 0:
        raise ValueError(f"{name} must be positive, got {parsed}")
    return parsed


@dataclass(frozen=True)
class Settings:
    """Runtime settings for ledgerly.

    Attributes:
        database_path: SQLite file path, or None for the default location
        owner_id: Owner all ledger operations act for (session stand-in)
        log_level: Level name for the ledgerly logger
        log_file: Optional path for a log file
        max_projection_periods: Horizon for amortization runs
        sparkline_points: Number of sampled points per projection sparkline
    """

    database_path: Optional[str] = None
    owner_id: Optional[str] = None
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    max_projection_periods: int = DEFAULT_MAX_PROJECTION_PERIODS
    sparkline_points: int = DEFAULT_SPARKLINE_POINTS

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from LEDGERLY_* environment variables."""
        return cls(
            database_path=os.environ.get("LEDGERLY_DB_PATH") or None,
            owner_id=os.environ.get("LEDGERLY_OWNER") or None,
            log_level=os.environ.get("LEDGERLY_LOG_LEVEL", "WARNING").upper(),
            log_file=os.environ.get("LEDGERLY_LOG_FILE") or None,
            max_projection_periods=_env_int(
                "LEDGERLY_MAX_PROJECTION_PERIODS", DEFAULT_MAX_PROJECTION_PERIODS
            ),
            sparkline_points=_env_int("LEDGERLY_SPARKLINE_POINTS", DEFAULT_SPARKLINE_POINTS),
        )

    def resolve_database_path(self) -> str:
        """Return the database path, defaulting to ~/.ledgerly/ledgerly.db."""
        if self.database_path is not None:
            return self.database_path
        db_dir = Path.home() / ".ledgerly"
        db_dir.mkdir(exist_ok=True)
        return str(db_dir / "ledgerly.db")
