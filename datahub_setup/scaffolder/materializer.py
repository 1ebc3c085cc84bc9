"""Filesystem materializer.

Walks the static manifest and writes the backend skeleton under the plan's
target root.  Structural files are create-if-absent, so re-running over an
existing tree leaves them alone; templated files are rewritten only when the
rendered bytes differ; ``.env`` asks before it is clobbered.

There is no rollback.  If an ``OSError`` interrupts the walk the target root
is left partially populated and the error is raised as ``FilesystemError``.
"""

from __future__ import annotations

import errno
import os
import re
import shutil
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from datahub_setup.config import Config
from datahub_setup.errors import FilesystemError, UserAbort
from datahub_setup.utils import print_info

from .manifest import DIRECTORIES, MANIFEST, MARKER_FILENAME, templated_artifacts
from .models import ArtifactSpec, ContentStrategy, GenerationPlan, TargetAction
from .resolver import build_template_context
from .templates import TemplateRenderer

ProgressCallback = Callable[[str], None]
ConfirmCallback = Callable[[str], bool]

_DATABASE_URL_LINE = re.compile(r"^DATABASE_URL=.*$", re.MULTILINE)


class MaterializeReport(BaseModel):
    """Ordered record of what one materialization did."""

    created_dirs: list[Path] = Field(default_factory=list)
    created_files: list[Path] = Field(default_factory=list)
    updated_files: list[Path] = Field(default_factory=list)
    skipped: list[Path] = Field(default_factory=list)
    events: list[str] = Field(default_factory=list)


class FilesystemMaterializer:
    """Creates the target root and every artifact in the manifest.

    Args:
        renderer: Template renderer; defaults to the packaged templates.
        config: Setup configuration (secret key, token expiry).
        confirm: Asked before an existing ``.env`` with different content
            is overwritten.  Defaults to "no", which keeps the file and only
            rewrites its ``DATABASE_URL`` line.
        progress: Receives one message per filesystem change, in order.
    """

    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        config: Config | None = None,
        confirm: ConfirmCallback | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.config = config or Config()
        self.confirm = confirm or (lambda _question: False)
        self.progress = progress or print_info

    # -- Target root -------------------------------------------------------

    def prepare_target(self, root: str | Path, action: TargetAction) -> Path:
        """Apply the target-root decision made by the collector."""
        root = Path(root)
        if action == TargetAction.ABORT:
            raise UserAbort("Setup aborted by user.")

        if action == TargetAction.REPLACE and root.exists():
            with _fs_guard(root):
                shutil.rmtree(root)
            self.progress(f"Removed existing directory: {root}")

        if not root.is_dir():
            with _fs_guard(root):
                root.mkdir(parents=True, exist_ok=True)
            self.progress(f"Created directory: {root}")
        return root

    # -- Manifest walk -----------------------------------------------------

    def materialize(self, plan: GenerationPlan) -> MaterializeReport:
        """Write every manifest artifact for *plan* and return the report."""
        root = plan.target_root
        self.check_templates()
        report = MaterializeReport()
        context = build_template_context(plan, self.config)

        for relative in DIRECTORIES:
            self._ensure_dir(root / relative, report)

        self._write_markers(root, report)

        for spec in MANIFEST:
            self._process(spec, root, context, report)

        return report

    def check_templates(self) -> None:
        """Fail before any write if a manifest template is not packaged."""
        available = set(self.renderer.list_templates())
        for spec in templated_artifacts():
            if spec.template_id not in available:
                missing = self.renderer.template_dir / spec.template_id
                raise FilesystemError(
                    missing, FileNotFoundError(errno.ENOENT, "Template not found")
                )

    def _ensure_dir(self, path: Path, report: MaterializeReport) -> None:
        if path.is_dir():
            return
        with _fs_guard(path):
            path.mkdir(parents=True, exist_ok=True)
        report.created_dirs.append(path)
        self._emit(report, f"Created directory: {path}")

    def _write_markers(self, root: Path, report: MaterializeReport) -> None:
        """Put an empty package marker into every directory under *root*."""
        with _fs_guard(root):
            directories = [root] + sorted(p for p in root.rglob("*") if p.is_dir())
        for directory in directories:
            marker = directory / MARKER_FILENAME
            if marker.exists():
                continue
            _write_atomic(marker, "")
            report.created_files.append(marker)
            self._emit(report, f"Created: {marker}")

    def _process(
        self,
        spec: ArtifactSpec,
        root: Path,
        context: dict[str, Any],
        report: MaterializeReport,
    ) -> None:
        path = root / spec.relative_path
        content = self.renderer.render(spec.template_id, context) if spec.template_id else ""

        if spec.content_strategy == ContentStrategy.CREATE_IF_ABSENT:
            if path.exists():
                report.skipped.append(path)
                return
            self._create(path, content, report)
            return

        if not path.exists():
            self._create(path, content, report)
            return

        with _fs_guard(path):
            existing = path.read_bytes().decode("utf-8", errors="replace")
        if existing == content:
            report.skipped.append(path)
            return

        if spec.content_strategy == ContentStrategy.TEMPLATE_RENDER:
            self._update(path, content, report, f"Regenerated file: {path}")
            return

        # OVERWRITE_WITH_CONFIRMATION
        if self.confirm(f"File '{path}' already exists. Overwrite?"):
            self._update(path, content, report, f"Overwrote file: {path}")
            return
        synced = sync_database_url(existing, context["database_url"])
        if synced == existing:
            report.skipped.append(path)
            return
        self._update(path, synced, report, f"Updated DATABASE_URL in {path.name}")

    def _create(self, path: Path, content: str, report: MaterializeReport) -> None:
        _write_atomic(path, content)
        report.created_files.append(path)
        self._emit(report, f"Created file: {path}")

    def _update(self, path: Path, content: str, report: MaterializeReport, message: str) -> None:
        _write_atomic(path, content)
        report.updated_files.append(path)
        self._emit(report, message)

    def _emit(self, report: MaterializeReport, message: str) -> None:
        report.events.append(message)
        self.progress(message)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def sync_database_url(env_text: str, database_url: str) -> str:
    """Point the ``DATABASE_URL`` line of a dotenv text at *database_url*.

    The line is appended when missing.  Every other line is kept as is.
    """
    line = f"DATABASE_URL={database_url}"
    if _DATABASE_URL_LINE.search(env_text):
        return _DATABASE_URL_LINE.sub(lambda _m: line, env_text, count=1)
    if env_text and not env_text.endswith("\n"):
        env_text += "\n"
    return f"{env_text}{line}\n"


@contextmanager
def _fs_guard(path: Path) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        raise FilesystemError(path, exc) from exc


def _write_atomic(path: Path, content: str) -> None:
    """Write *content* through a temp file in the same directory.

    A reader never sees a half-written file: the old bytes stay in place
    until ``os.replace`` swaps the new file in.
    """
    with _fs_guard(path):
        path.parent.mkdir(parents=True, exist_ok=True)
        mode = path.stat().st_mode & 0o777 if path.exists() else 0o644
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content.encode("utf-8"))
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
