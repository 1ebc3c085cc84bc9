"""Static generation manifest.

The directory list and the ordered artifact list are fixed at design time.
Only the values interpolated into templated artifacts depend on user input.
"""

from __future__ import annotations

from pathlib import Path

from .models import ArtifactSpec, ContentStrategy

_ABSENT = ContentStrategy.CREATE_IF_ABSENT
_RENDER = ContentStrategy.TEMPLATE_RENDER
_CONFIRM = ContentStrategy.OVERWRITE_WITH_CONFIRMATION

MARKER_FILENAME = "__init__.py"

DIRECTORIES: tuple[Path, ...] = tuple(
    Path(d)
    for d in (
        "app/api/v1/endpoints",
        "app/core",
        "app/db/migrations",
        "app/models",
        "app/schemas",
        "app/crud",
        "app/utils",
        "app/workers",
        "alembic/versions",
        "tests/test_api",
        "tests/test_models",
        "tests/test_utils",
        "uploads/datasets",
        "uploads/audio",
        "scripts",
    )
)


def _spec(path: str, strategy: ContentStrategy = _ABSENT, template_id: str | None = None) -> ArtifactSpec:
    return ArtifactSpec(relative_path=Path(path), content_strategy=strategy, template_id=template_id)


MANIFEST: tuple[ArtifactSpec, ...] = (
    _spec("app/main.py", _RENDER, "app/main.py.j2"),
    _spec("app/api/v1/api.py"),
    _spec("app/api/v1/dependencies.py"),
    _spec("app/core/config.py", _RENDER, "app/core/config.py.j2"),
    _spec("app/core/security.py"),
    _spec("app/core/dependencies.py"),
    _spec("app/core/exceptions.py"),
    _spec("app/db/base.py"),
    _spec("app/db/base_class.py"),
    _spec("app/db/session.py", _RENDER, "app/db/session.py.j2"),
    _spec("app/db/init_db.py"),
    _spec("alembic/env.py"),
    _spec("alembic/script.py.mako"),
    _spec("tests/conftest.py"),
    _spec("run.py", _RENDER, "run.py.j2"),
    _spec("requirements.txt", _RENDER, "requirements.txt.j2"),
    _spec("requirements-dev.txt", _RENDER, "requirements-dev.txt.j2"),
    _spec("Dockerfile", _RENDER, "Dockerfile.j2"),
    _spec("docker-compose.yml", _RENDER, "docker-compose.yml.j2"),
    _spec("Makefile", _RENDER, "Makefile.j2"),
    _spec("README.md", _RENDER, "README.md.j2"),
    _spec("pyproject.toml"),
    _spec("scripts/create_initial_data.py"),
    _spec("scripts/backup_db.py"),
    _spec(".env.example", _ABSENT, "env.example.j2"),
    _spec(".env", _CONFIRM, "env.j2"),
    _spec(".gitignore", _ABSENT, "gitignore.j2"),
)


def templated_artifacts() -> list[ArtifactSpec]:
    """Return the manifest entries that carry a template."""
    return [spec for spec in MANIFEST if spec.template_id]
