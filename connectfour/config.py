"""
Configuration - Engine settings with environment overrides.

Environment variables:
    CONNECTFOUR_COLUMNS        Board width (default 7)
    CONNECTFOUR_ROWS           Board height (default 5)
    CONNECTFOUR_MOVE_TIMEOUT   Seconds a player has to move (default 60)
    CONNECTFOUR_LOG_LEVEL      Logging level name (default INFO)
    CONNECTFOUR_ENV            development / production
"""

from __future__ import annotations
from dataclasses import dataclass
import os

COLUMNS = 7
ROWS = 5
CONNECT_N = 4
MOVE_TIMEOUT = 60.0


@dataclass(frozen=True)
class Settings:
    """Settings shared by every session created from them."""
    columns: int = COLUMNS
    rows: int = ROWS
    connect: int = CONNECT_N
    move_timeout: float = MOVE_TIMEOUT
    log_level: str = "INFO"
    env: str = "development"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            columns=int(os.getenv("CONNECTFOUR_COLUMNS", COLUMNS)),
            rows=int(os.getenv("CONNECTFOUR_ROWS", ROWS)),
            move_timeout=float(os.getenv("CONNECTFOUR_MOVE_TIMEOUT", MOVE_TIMEOUT)),
            log_level=os.getenv("CONNECTFOUR_LOG_LEVEL", "INFO").upper(),
            env=os.getenv("CONNECTFOUR_ENV", "development"),
        )
