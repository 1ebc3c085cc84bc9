"""Jinja2 template rendering for the backend skeleton.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``datahub_setup/scaffolder/templates/`` directory and renders them with the
resolved plan's context.  Templates are opaque payloads: the renderer only
interpolates values, it never parses or executes the generated code.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for the generated project.

    Undefined variables are errors rather than empty strings, so a template
    that drifts from the context fails loudly instead of writing a broken
    file.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["yaml_quote"] = _yaml_quote_filter
        self.env.filters["env_value"] = _env_value_filter

    # -- Rendering ---------------------------------------------------------

    def render(self, template_id: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_id: Path relative to the template directory (e.g.
                ``"app/main.py.j2"``).
            context: Dictionary of variables available inside the template.

        Returns:
            The rendered template content as a string.
        """
        template = self.env.get_template(template_id)
        return template.render(**context)

    # -- Utility -----------------------------------------------------------

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under *prefix*.

        Paths are relative to the template root directory.
        """
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob("*.j2")
        )


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _yaml_quote_filter(value: Any) -> str:
    """Double-quote a scalar for YAML (JSON strings are valid YAML)."""
    return json.dumps(str(value))


def _env_value_filter(value: Any) -> str:
    """Quote a dotenv value only when it contains whitespace, ``#`` or quotes."""
    text = str(value)
    if any(ch.isspace() for ch in text) or any(ch in text for ch in "#\"'"):
        return json.dumps(text)
    return text
