"""Resolution engine: connection config -> generation plan.

Pure functions only.  Nothing here touches the network or the disk, so the
same input always yields the same plan and the same template context.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from datahub_setup.config import Config

from .models import (
    ComposeVariant,
    ConnectionConfig,
    DatabaseChoice,
    GenerationPlan,
    NetworkConnection,
    profile_for,
)

MYSQL_ROOT_USER = "root"
SQLITE_DATA_DIR = "db"


def build_connection_url(connection: ConnectionConfig) -> str:
    """Return the SQLAlchemy-style URL for *connection*.

    Formats::

        sqlite:///./<name>
        postgresql://<user>:<pass>@<host>:<port>/<name>
        mysql+pymysql://<user>:<pass>@<host>:<port>/<name>
    """
    return connection.connection_url


def select_compose_variant(engine: DatabaseChoice) -> ComposeVariant:
    if engine == DatabaseChoice.SQLITE:
        return ComposeVariant.SQLITE
    return ComposeVariant.NETWORKED


def resolve(connection: ConnectionConfig, target_root: str | Path) -> GenerationPlan:
    """Map a collected connection config to an immutable generation plan."""
    profile = profile_for(connection.engine)
    return GenerationPlan(
        target_root=Path(target_root),
        connection=connection,
        compose_variant=select_compose_variant(connection.engine),
        extra_driver_dependency=profile.driver_package,
    )


# ---------------------------------------------------------------------------
# Compose services
# ---------------------------------------------------------------------------


def _db_environment(connection: NetworkConnection) -> dict[str, str]:
    if connection.engine == DatabaseChoice.POSTGRESQL:
        return {
            "POSTGRES_DB": connection.database_name,
            "POSTGRES_USER": connection.username,
            "POSTGRES_PASSWORD": connection.password,
        }
    environment = {
        "MYSQL_DATABASE": connection.database_name,
        "MYSQL_ROOT_PASSWORD": connection.password,
    }
    # The mysql image refuses to start when MYSQL_USER is root.
    if connection.username != MYSQL_ROOT_USER:
        environment["MYSQL_USER"] = connection.username
        environment["MYSQL_PASSWORD"] = connection.password
    return environment


def _db_data_dir(engine: DatabaseChoice) -> str:
    if engine == DatabaseChoice.POSTGRESQL:
        return "/var/lib/postgresql/data"
    return "/var/lib/mysql"


def compose_services(plan: GenerationPlan) -> dict[str, dict[str, Any]]:
    """Describe the services of the generated ``docker-compose.yml``.

    The ``api`` service is always present.  The networked variant adds a
    ``db`` container built from the engine image; inside the compose
    network the API reaches it by service name, not by the host the user
    typed.  The sqlite variant has no ``db`` service; it bind-mounts a ``db/``
    directory into ``api`` and points ``DATABASE_URL`` at the file inside it.
    """
    connection = plan.connection
    api: dict[str, Any] = {
        "build": ".",
        "ports": ["8000:8000"],
        "env_file": [".env"],
        "volumes": ["./uploads:/app/uploads"],
    }
    services: dict[str, dict[str, Any]] = {"api": api}

    if not isinstance(connection, NetworkConnection):
        in_container = connection.model_copy(
            update={"database_name": f"{SQLITE_DATA_DIR}/{connection.database_name}"}
        )
        api["environment"] = {"DATABASE_URL": in_container.connection_url}
        api["volumes"].append(f"./{SQLITE_DATA_DIR}:/app/{SQLITE_DATA_DIR}")
        return services

    # Inside the compose network the database listens on its default port;
    # the port the user chose is only published on the host.
    in_network = connection.model_copy(
        update={"host": "db", "port": plan.profile.default_port}
    )
    api["environment"] = {"DATABASE_URL": in_network.connection_url}
    api["depends_on"] = ["db"]
    services["db"] = {
        "image": plan.profile.image,
        "environment": _db_environment(connection),
        "ports": [f"{connection.port}:{plan.profile.default_port}"],
        "volumes": [f"db_data:{_db_data_dir(connection.engine)}"],
    }
    return services


def compose_volumes(plan: GenerationPlan) -> list[str]:
    """Named volumes declared at the top level of the compose file."""
    if plan.compose_variant == ComposeVariant.NETWORKED:
        return ["db_data"]
    return []


# ---------------------------------------------------------------------------
# Template context
# ---------------------------------------------------------------------------


def build_template_context(plan: GenerationPlan, config: Config | None = None) -> dict[str, Any]:
    """Build the flat variable set handed to the template renderer."""
    config = config or Config()
    connection = plan.connection
    profile = plan.profile
    networked = isinstance(connection, NetworkConnection)

    return {
        "project_name": plan.target_root.name,
        "engine": connection.engine.value,
        "engine_label": profile.label,
        "compose_variant": plan.compose_variant.value,
        "database_url": connection.connection_url,
        "database_name": connection.database_name,
        "driver": profile.driver,
        "driver_package": plan.extra_driver_dependency,
        "image": profile.image,
        "host": connection.host if networked else "",
        "port": connection.port if networked else None,
        "username": connection.username if networked else "",
        "password": connection.password if networked else "",
        "secret_key": config.secret_key,
        "algorithm": config.algorithm,
        "access_token_expire_minutes": config.access_token_expire_minutes,
        "services": compose_services(plan),
        "volumes": compose_volumes(plan),
    }
