"""Configuration and environment variable loading for the materials gateway."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

from dotenv import load_dotenv


def _load_dotenv() -> None:
    """Load the first .env file found next to the project or in the cwd."""
    env_paths = [
        Path(__file__).parent.parent / ".env",
        Path.cwd() / ".env",
    ]
    for env_path in env_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


# Load .env on module import
_load_dotenv()

DEFAULT_API_BASE_URL = "https://api.materialsproject.org/"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [entry.strip() for entry in raw.split(",") if entry.strip()]


@dataclass
class GatewaySettings:
    """Configuration for the Materials Project gateway.

    Loads from environment variables with sensible defaults.

    Environment Variables:
        MP_API_KEY: Materials Project API key (required for every upstream call)
        MP_API_BASE_URL: Upstream REST API root
        MATERIALS_REQUEST_TIMEOUT: Per-call timeout in seconds
        MATERIALS_CORS_ORIGINS: Comma separated origins allowed by the HTTP app
        MATERIALS_LOG_LEVEL: Log level used by the CLI

    Example:
        settings = GatewaySettings.from_env()
        print(settings.api_base_url)
    """

    mp_api_key: str | None = None
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout_seconds: float = 30.0
    user_agent: str = "materials-gateway/0.1.0"
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000"]
    )
    log_level: str = "INFO"

    _instance: ClassVar[GatewaySettings | None] = None

    @classmethod
    def from_env(cls) -> GatewaySettings:
        """Create settings from environment variables.

        Returns:
            GatewaySettings: Configured settings instance
        """
        return cls(
            mp_api_key=os.getenv("MP_API_KEY") or None,
            api_base_url=os.getenv("MP_API_BASE_URL", DEFAULT_API_BASE_URL),
            request_timeout_seconds=_env_float("MATERIALS_REQUEST_TIMEOUT", 30.0),
            cors_origins=_env_list("MATERIALS_CORS_ORIGINS", ["http://localhost:3000"]),
            log_level=os.getenv("MATERIALS_LOG_LEVEL", "INFO").upper(),
        )

    @classmethod
    def get_instance(cls) -> GatewaySettings:
        """Get singleton settings instance."""
        if cls._instance is None:
            cls._instance = cls.from_env()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)."""
        cls._instance = None

    @property
    def has_mp_api_key(self) -> bool:
        """Check if MP API key is configured."""
        return bool(self.mp_api_key)

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings.

        Returns:
            list[str]: Warning messages for missing/invalid configuration
        """
        warnings = []

        if not self.has_mp_api_key:
            warnings.append(
                "MP_API_KEY not set. Every Materials Project request will fail "
                "with a configuration error. Get your key at: "
                "https://materialsproject.org/api"
            )

        if self.request_timeout_seconds <= 0:
            warnings.append(
                f"MATERIALS_REQUEST_TIMEOUT={self.request_timeout_seconds} must be "
                "positive; upstream calls would never time out."
            )

        return warnings
