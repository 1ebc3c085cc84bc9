"""DataHub setup configuration.

Centralised, typed configuration for the scaffolding run.  Settings use a
Pydantic v2 model so they are validated at construction time and can be
overridden from environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class Config(BaseModel):
    """Global setup configuration.

    Created once by the CLI entry point and passed to the collector, the
    resolver and the materializer.  None of these values are asked for
    interactively.
    """

    project_dir_name: str = Field(default="datahub-api", min_length=1)
    output_dir: Path = Field(default_factory=Path.cwd)
    sqlite_filename: str = Field(default="datahub.db", min_length=1)
    secret_key: str = Field(default="your-super-secret-jwt-key-change-in-production")
    algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=30, ge=1)
    port_check_timeout: int = Field(
        default=10, ge=1, description="Seconds allowed for the port owner lookup"
    )

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def project_root(self) -> Path:
        """Directory the backend skeleton is generated into."""
        return self.output_dir / self.project_dir_name

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            DATAHUB_PROJECT_DIR, DATAHUB_OUTPUT_DIR, DATAHUB_SQLITE_FILE,
            DATAHUB_SECRET_KEY, DATAHUB_ALGORITHM,
            DATAHUB_ACCESS_TOKEN_EXPIRE_MINUTES.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("DATAHUB_PROJECT_DIR"):
            kwargs["project_dir_name"] = os.environ["DATAHUB_PROJECT_DIR"]
        if os.environ.get("DATAHUB_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["DATAHUB_OUTPUT_DIR"])
        if os.environ.get("DATAHUB_SQLITE_FILE"):
            kwargs["sqlite_filename"] = os.environ["DATAHUB_SQLITE_FILE"]
        if os.environ.get("DATAHUB_SECRET_KEY"):
            kwargs["secret_key"] = os.environ["DATAHUB_SECRET_KEY"]
        if os.environ.get("DATAHUB_ALGORITHM"):
            kwargs["algorithm"] = os.environ["DATAHUB_ALGORITHM"]
        if os.environ.get("DATAHUB_ACCESS_TOKEN_EXPIRE_MINUTES"):
            kwargs["access_token_expire_minutes"] = int(
                os.environ["DATAHUB_ACCESS_TOKEN_EXPIRE_MINUTES"]
            )
        return cls(**kwargs)
