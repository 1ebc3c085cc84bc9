"""DataHub API setup -- interactive scaffolding for a FastAPI backend skeleton.

Asks for a database engine and its connection details, resolves them into an
immutable ``GenerationPlan`` and writes the project tree under
``<cwd>/datahub-api/``.

Quick usage::

    from datahub_setup.scaffolder import resolve, FilesystemMaterializer
    from datahub_setup.scaffolder.models import DatabaseChoice, NetworkConnection

    connection = NetworkConnection(engine=DatabaseChoice.POSTGRESQL, port=5432)
    plan = resolve(connection, "/tmp/datahub-api")
    FilesystemMaterializer().materialize(plan)
"""

__version__ = "0.1.0"
