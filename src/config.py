"""
Runtime configuration for the ledger engine.

Values come from defaults, then LEDGER_* environment variables, then
command line options (applied by main.py).
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_WORKERS = "LEDGER_WORKERS"
ENV_LOG_LEVEL = "LEDGER_LOG_LEVEL"
ENV_LOG_FILE = "LEDGER_LOG_FILE"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class EngineConfig:
    num_workers: int = 1           # 1 = apply inline in arrival order
    log_level: str = "WARNING"
    log_file: Optional[str] = None  # stderr when unset
    precision: int = 4             # fractional digits in the output

    def __post_init__(self):
        if self.num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {self.num_workers}")
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {self.log_level!r}")
        if self.precision < 0:
            raise ValueError(f"precision must be >= 0, got {self.precision}")

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        environ = os.environ if environ is None else environ
        kwargs = {}
        if environ.get(ENV_WORKERS):
            try:
                kwargs["num_workers"] = int(environ[ENV_WORKERS])
            except ValueError:
                raise ValueError(f"{ENV_WORKERS} must be an integer, got {environ[ENV_WORKERS]!r}") from None
        if environ.get(ENV_LOG_LEVEL):
            kwargs["log_level"] = environ[ENV_LOG_LEVEL]
        if environ.get(ENV_LOG_FILE):
            kwargs["log_file"] = environ[ENV_LOG_FILE]
        return cls(**kwargs)
