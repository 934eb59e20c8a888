"""Runtime configuration, read from ``CLINE_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from cline.dispatcher import DEFAULT_QUIT_TIMES

LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass
class Config:
    """Editor configuration."""

    log_file: Optional[str] = None
    log_level: str = "warning"
    quit_times: int = DEFAULT_QUIT_TIMES
    write_log: Optional[str] = None

    def __post_init__(self) -> None:
        self.log_level = self.log_level.lower()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Unknown log level {self.log_level!r}, expected one of {', '.join(LOG_LEVELS)}"
            )
        if self.quit_times < 1:
            raise ValueError(f"quit_times must be at least 1, got {self.quit_times}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Config:
        env = os.environ if environ is None else environ

        quit_times_raw = env.get("CLINE_QUIT_TIMES", "")
        try:
            quit_times = int(quit_times_raw) if quit_times_raw else DEFAULT_QUIT_TIMES
        except ValueError:
            raise ValueError(f"CLINE_QUIT_TIMES must be an integer, got {quit_times_raw!r}") from None

        return cls(
            log_file=env.get("CLINE_LOG_FILE") or None,
            log_level=env.get("CLINE_LOG_LEVEL") or "warning",
            quit_times=quit_times,
            write_log=env.get("CLINE_WRITE_LOG") or None,
        )
