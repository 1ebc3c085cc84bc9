"""Resolution engine, template renderer and filesystem materializer."""

from datahub_setup.scaffolder.materializer import FilesystemMaterializer, MaterializeReport
from datahub_setup.scaffolder.models import (
    ArtifactSpec,
    ComposeVariant,
    ContentStrategy,
    DatabaseChoice,
    GenerationPlan,
    NetworkConnection,
    SqliteConnection,
)
from datahub_setup.scaffolder.resolver import build_connection_url, resolve
from datahub_setup.scaffolder.templates import TemplateRenderer

__all__ = [
    "ArtifactSpec",
    "ComposeVariant",
    "ContentStrategy",
    "DatabaseChoice",
    "FilesystemMaterializer",
    "GenerationPlan",
    "MaterializeReport",
    "NetworkConnection",
    "SqliteConnection",
    "TemplateRenderer",
    "build_connection_url",
    "resolve",
]
