"""Pydantic v2 models for the scaffolding run.

These models are the contract between the collector, the resolver and the
materializer.  Everything here is frozen: a value is built once per run and
then only read.
"""

from __future__ import annotations

import ipaddress
import re
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DatabaseChoice(str, Enum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"


class ComposeVariant(str, Enum):
    """Shape of the generated ``docker-compose.yml``."""

    SQLITE = "sqlite"
    NETWORKED = "networked"


class ContentStrategy(str, Enum):
    CREATE_IF_ABSENT = "create_if_absent"
    OVERWRITE_WITH_CONFIRMATION = "overwrite_with_confirmation"
    TEMPLATE_RENDER = "template_render"


class RunState(str, Enum):
    COLLECTING = "collecting"
    RESOLVED = "resolved"
    MATERIALIZING = "materializing"
    DONE = "done"
    ABORTED = "aborted"


class TargetAction(str, Enum):
    """What to do with the target root before materializing."""

    CREATE = "create"
    REPLACE = "replace"
    ABORT = "abort"


# ---------------------------------------------------------------------------
# Engine profiles
# ---------------------------------------------------------------------------


class EngineProfile(BaseModel):
    """Fixed per-engine facts: menu key, port, driver and container image."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    default_port: Optional[int] = None
    driver: str = ""
    driver_package: str = ""
    url_scheme: str
    image: str = ""


ENGINE_PROFILES: dict[DatabaseChoice, EngineProfile] = {
    DatabaseChoice.POSTGRESQL: EngineProfile(
        key="1",
        label="PostgreSQL",
        default_port=5432,
        driver="psycopg2",
        driver_package="psycopg2-binary",
        url_scheme="postgresql",
        image="postgres:16-alpine",
    ),
    DatabaseChoice.MYSQL: EngineProfile(
        key="2",
        label="MySQL",
        default_port=3306,
        driver="pymysql",
        driver_package="PyMySQL",
        url_scheme="mysql+pymysql",
        image="mysql:8.0",
    ),
    DatabaseChoice.SQLITE: EngineProfile(
        key="3",
        label="SQLite",
        url_scheme="sqlite",
    ),
}


def profile_for(engine: DatabaseChoice) -> EngineProfile:
    """Return the fixed profile for *engine*."""
    return ENGINE_PROFILES[engine]


def engine_for_key(key: str) -> Optional[DatabaseChoice]:
    """Map a menu key (``"1"``..``"3"``) to an engine, or ``None``."""
    for engine, profile in ENGINE_PROFILES.items():
        if profile.key == key:
            return engine
    return None


# ---------------------------------------------------------------------------
# Connection config (tagged union on ``engine``)
# ---------------------------------------------------------------------------

_DATABASE_NAME_RE = re.compile(r"^[\w.$-]+$")
_HOST_FORBIDDEN = set("/?#@[] \t")


def normalize_host(raw: str) -> str:
    """Validate a host name or IP literal; ``[::1]`` becomes ``::1``.

    Raises:
        ValueError: If the value cannot sit in the host part of a URL.
    """
    host = raw.strip()
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not host:
        raise ValueError("host must not be empty")
    if ":" in host:
        try:
            ipaddress.IPv6Address(host)
        except ValueError as exc:
            raise ValueError("only IPv6 literals may contain ':'") from exc
        return host
    if _HOST_FORBIDDEN.intersection(host):
        raise ValueError("host contains characters not allowed in a URL host")
    return host


def check_database_name(raw: str) -> str:
    """Database names are limited to letters, digits, ``_``, ``.``, ``$`` and ``-``."""
    if not _DATABASE_NAME_RE.match(raw):
        raise ValueError("use only letters, digits, '_', '.', '$' and '-'")
    return raw


class SqliteConnection(BaseModel):
    """File-based database: no host, port or credentials."""

    model_config = ConfigDict(frozen=True)

    engine: Literal[DatabaseChoice.SQLITE] = DatabaseChoice.SQLITE
    database_name: str = Field(default="datahub.db", min_length=1)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def connection_url(self) -> str:
        return f"{profile_for(self.engine).url_scheme}:///./{self.database_name}"


class NetworkConnection(BaseModel):
    """Server database reached over TCP."""

    model_config = ConfigDict(frozen=True)

    engine: Literal[DatabaseChoice.POSTGRESQL, DatabaseChoice.MYSQL]
    host: str = Field(default="localhost", min_length=1)
    port: int = Field(ge=1, le=65535)
    database_name: str = Field(default="datahub", min_length=1)
    username: str = Field(default="datahub_user", min_length=1)
    password: str = Field(default="datahub_pass")

    @field_validator("host")
    @classmethod
    def _valid_host(cls, value: str) -> str:
        return normalize_host(value)

    @field_validator("database_name")
    @classmethod
    def _valid_database_name(cls, value: str) -> str:
        return check_database_name(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def connection_url(self) -> str:
        # Credentials are percent-encoded so ``@``, ``:`` or ``/`` in a
        # password cannot change how the URL splits.  IPv6 hosts are
        # bracketed.
        scheme = profile_for(self.engine).url_scheme
        user = quote(self.username, safe="")
        password = quote(self.password, safe="")
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{scheme}://{user}:{password}@{host}:{self.port}/{self.database_name}"


ConnectionConfig = Annotated[
    Union[SqliteConnection, NetworkConnection],
    Field(discriminator="engine"),
]


# ---------------------------------------------------------------------------
# Generation plan & manifest entries
# ---------------------------------------------------------------------------


class GenerationPlan(BaseModel):
    """Fully resolved, immutable input for the materializer."""

    model_config = ConfigDict(frozen=True)

    target_root: Path
    connection: ConnectionConfig
    compose_variant: ComposeVariant
    extra_driver_dependency: str = ""

    @property
    def engine(self) -> DatabaseChoice:
        return self.connection.engine

    @property
    def profile(self) -> EngineProfile:
        return profile_for(self.connection.engine)

    @property
    def port(self) -> Optional[int]:
        """Network port, or ``None`` for sqlite."""
        if isinstance(self.connection, NetworkConnection):
            return self.connection.port
        return None

    @property
    def connection_url(self) -> str:
        return self.connection.connection_url


class ArtifactSpec(BaseModel):
    """One file in the static generation manifest."""

    model_config = ConfigDict(frozen=True)

    relative_path: Path
    content_strategy: ContentStrategy = ContentStrategy.CREATE_IF_ABSENT
    template_id: Optional[str] = None

    @model_validator(mode="after")
    def _template_required(self) -> "ArtifactSpec":
        if self.content_strategy != ContentStrategy.CREATE_IF_ABSENT and not self.template_id:
            raise ValueError(
                f"{self.relative_path}: strategy {self.content_strategy.value} needs a template_id"
            )
        if self.relative_path.is_absolute():
            raise ValueError(f"{self.relative_path}: manifest paths must be relative")
        return self
