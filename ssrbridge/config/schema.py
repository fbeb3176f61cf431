"""Configuration schema using Pydantic.

Worker settings come from ``SSRBRIDGE_*`` environment variables; the client
configuration is a plain model that can also be loaded from a JSON file.
"""

import sys
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkerSettings(BaseSettings):
    """Render worker settings read from the environment."""
    env: Literal["development", "production"] = "development"
    debug: bool = False  # Full tracebacks on the side channel
    preload: bool = True  # Load the bundle before reading requests (production only)
    log_level: str = "INFO"
    log_file: str | None = None  # Optional rotating log file

    model_config = SettingsConfigDict(env_prefix="SSRBRIDGE_")

    @property
    def production(self) -> bool:
        return self.env == "production"


class ClientConfig(BaseModel):
    """How the bridge client spawns and talks to a render worker."""
    bundle_path: str
    production: bool = False
    debug: bool = False
    python: str = Field(default_factory=lambda: sys.executable)
    cwd: str | None = None
    timeout_seconds: float = Field(default=30.0, gt=0)
    shutdown_timeout_seconds: float = Field(default=2.0, gt=0)
    env: dict[str, str] = Field(default_factory=dict)  # Extra environment for the worker

    def worker_command(self) -> list[str]:
        return [self.python, "-m", "ssrbridge.worker", self.bundle_path]

    def worker_env(self, base: dict[str, str]) -> dict[str, str]:
        env = dict(base)
        env.update(self.env)
        env["SSRBRIDGE_ENV"] = "production" if self.production else "development"
        env["SSRBRIDGE_DEBUG"] = "1" if self.debug else "0"
        env.setdefault("PYTHONUNBUFFERED", "1")
        return env
