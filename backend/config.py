"""
Compose Studio configuration — all environment variables in one place.

Read from environment at import time. Kernel modules never read the
environment; they receive these values as parameters.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Storage
    STORAGE_DIR: str = os.environ.get("STUDIO_STORAGE_DIR", ".studio")
    STORAGE_KEY: str = os.environ.get("STUDIO_STORAGE_KEY", "compose_studio_v1")

    # Rendering
    RENDER_TIMEOUT: float = float(os.environ.get("STUDIO_RENDER_TIMEOUT", "10"))
    EXTERNAL_RENDERER: str = os.environ.get("STUDIO_EXTERNAL_RENDERER", "")
    MAX_CALL_DEPTH: int = int(os.environ.get("STUDIO_MAX_CALL_DEPTH", "64"))

    # Server
    HOST: str = os.environ.get("STUDIO_HOST", "127.0.0.1")
    PORT: int = int(os.environ.get("STUDIO_PORT", "8000"))

    # Application
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")

    @property
    def USE_MEMORY_STORAGE(self) -> bool:
        return not self.STORAGE_DIR.strip()


# Singleton instance
settings = Settings()

if settings.RENDER_TIMEOUT <= 0:
    raise RuntimeError("STUDIO_RENDER_TIMEOUT must be a positive number of seconds")
if settings.MAX_CALL_DEPTH < 1:
    raise RuntimeError("STUDIO_MAX_CALL_DEPTH must be at least 1")
