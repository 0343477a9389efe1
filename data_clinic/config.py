"""
Settings for Data Clinic, read from environment variables with defaults.
"""

from __future__ import annotations

import os
from typing import Optional


class Settings:
    """Environment-driven settings. A fresh instance re-reads the environment."""

    def __init__(self) -> None:
        # ── Chat assistant (optional: "none" disables it) ──
        self.LLM_PROVIDER: str = os.getenv("DATA_CLINIC_LLM_PROVIDER", "none").lower()
        self.LLM_MODEL: Optional[str] = os.getenv("DATA_CLINIC_LLM_MODEL") or None
        self.LLM_TEMPERATURE: float = float(os.getenv("DATA_CLINIC_LLM_TEMPERATURE", "0.2"))

        # ── Output ──
        self.OUTPUT_DIR: str = os.getenv("DATA_CLINIC_OUTPUT_DIR", "output")
        self.LOG_LEVEL: str = os.getenv("DATA_CLINIC_LOG_LEVEL", "WARNING").upper()

        # ── Uploads ──
        self.MAX_UPLOAD_BYTES: int = int(
            os.getenv("DATA_CLINIC_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))
        )

    @property
    def assistant_enabled(self) -> bool:
        return self.LLM_PROVIDER not in ("", "none")


settings = Settings()
