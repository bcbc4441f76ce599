"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings

log = logging.getLogger("booking_gateway.config")

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3001",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "https://odrienmerter.github.io",
]


class Settings(BaseSettings):
    # Google Calendar service account
    google_client_email: str = ""
    google_private_key: str = ""
    calendar_id: str = ""
    calendar_timezone: str = "Europe/Paris"

    # CORS
    allowed_origins: list[str] = list(DEFAULT_ALLOWED_ORIGINS)

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    max_body_bytes: int = 1024 * 1024

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator("google_private_key")
    @classmethod
    def _unescape_newlines(cls, value: str) -> str:
        # PEM keys are usually stored on one line in .env files
        return value.replace("\\n", "\n")

    @property
    def credentials_configured(self) -> bool:
        return bool(self.google_client_email and self.google_private_key and self.calendar_id)

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, never raises."""
        warnings: list[str] = []

        missing = [
            name.upper()
            for name in ("google_client_email", "google_private_key", "calendar_id")
            if not getattr(self, name)
        ]
        if missing:
            warnings.append(
                f"{', '.join(missing)} not set. Calendar integration disabled; "
                "booking endpoints will answer 503."
            )
        elif "BEGIN PRIVATE KEY" not in self.google_private_key:
            warnings.append("GOOGLE_PRIVATE_KEY does not look like a PEM private key.")

        if not self.allowed_origins:
            warnings.append("ALLOWED_ORIGINS is empty. Only requests without an Origin header are accepted.")

        return warnings


settings = Settings()
