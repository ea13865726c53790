"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which renders template text against a
``TemplateContext``.  Rendering is a pure function of (template, context):
no clock, randomness or file-system access beyond the template being read.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    TemplateError,
    TemplateNotFound,
    Undefined,
    select_autoescape,
)

from appforge.context import TemplateContext
from appforge.errors import TemplateNotFoundError, TemplateRenderError


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

TEMPLATE_SUFFIX = ".j2"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    Templates rendered from a string or an arbitrary file may still
    ``{% include %}`` templates stored under ``template_dir``.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["camel_case"] = _camel_case_filter
        self.env.tests["enabled"] = _enabled_test

    # -- Rendering ---------------------------------------------------------

    def render_string(
        self,
        template_text: str,
        context: TemplateContext | Mapping[str, Any],
        *,
        source: str = "<string>",
    ) -> str:
        """Render inline template text with *context*."""
        try:
            template = self.env.from_string(template_text)
            return template.render(**_as_variables(context))
        except TemplateError as exc:
            raise TemplateRenderError(source, str(exc)) from exc

    def render_template(
        self, template_name: str, context: TemplateContext | Mapping[str, Any]
    ) -> str:
        """Render a template addressed relative to ``template_dir``."""
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound as exc:
            raise TemplateNotFoundError(template_name) from exc
        try:
            return template.render(**_as_variables(context))
        except TemplateError as exc:
            raise TemplateRenderError(template_name, str(exc)) from exc

    async def render_file(
        self, path: str | Path, context: TemplateContext | Mapping[str, Any]
    ) -> str:
        """Read the template at *path* and render it.

        Raises:
            TemplateNotFoundError: If *path* does not exist.
            TemplateRenderError: If the template is malformed.
        """
        template_path = Path(path)
        try:
            text = await asyncio.to_thread(template_path.read_text, encoding="utf-8")
        except FileNotFoundError as exc:
            raise TemplateNotFoundError(str(template_path)) from exc
        return self.render_string(text, context, source=str(template_path))

    # -- Utility -----------------------------------------------------------

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under *prefix*."""
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob(f"*{TEMPLATE_SUFFIX}")
        )


def _as_variables(context: TemplateContext | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(context, TemplateContext):
        return context.as_dict()
    return dict(context)


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _slugify_filter(value: Any) -> str:
    """Convert a string to a URL/filename-safe slug."""
    if not isinstance(value, str):
        return ""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: Any) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    camel = _camel_case_filter(value)
    return camel[:1].upper() + camel[1:]


def _snake_case_filter(value: Any) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    if not isinstance(value, str):
        return ""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def _camel_case_filter(value: Any) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``.

    Only separators are touched; the first character keeps its case.
    """
    if not isinstance(value, str):
        return ""
    return re.sub(r"[-_\s]+(.)", lambda m: m.group(1).upper(), value)


def _enabled_test(value: Any) -> bool:
    """``{% if modules.auth is enabled %}``: true for any settings mapping, even ``{}``."""
    return value is not False and value is not None and not isinstance(value, Undefined)
