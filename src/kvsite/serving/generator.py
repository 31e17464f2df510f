"""Rendering of the edge serving routine."""

from __future__ import annotations

import json
import re
from importlib.resources import files
from string import Template

from kvsite.config import DEFAULT_CONTENT_TYPE
from kvsite.errors import TemplateRenderError
from kvsite.models import Manifest

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def load_template() -> str:
    try:
        template = files("kvsite.serving") / "templates" / "worker.js"
        return template.read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateRenderError(f"cannot load worker template: {exc}") from exc


def validate_namespace(namespace: str) -> str:
    """The namespace is emitted as a bare binding name, so it must be an identifier."""
    if not _IDENTIFIER.fullmatch(namespace or ""):
        raise TemplateRenderError(f"namespace {namespace!r} is not a valid binding identifier")
    return namespace


def _compact(value: object, *, sort_keys: bool = False) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=sort_keys, ensure_ascii=True)


def render_worker(
    namespace: str,
    manifest: Manifest,
    *,
    content_type: str = DEFAULT_CONTENT_TYPE,
    template: str | None = None,
) -> str:
    """Render the worker source for ``manifest``.

    Identical inputs give byte-identical output: large files are emitted with
    sorted keys, small files keep manifest order.
    """
    validate_namespace(namespace)
    source = template if template is not None else load_template()
    try:
        large_files = _compact(
            {key: list(chunks) for key, chunks in manifest.large_files.items()}, sort_keys=True
        )
        small_files = _compact(list(manifest.small_files))
        return Template(source).substitute(
            namespace=namespace,
            large_files=large_files,
            small_files=small_files,
            content_type=_compact(content_type),
        )
    except (TypeError, ValueError, KeyError) as exc:
        raise TemplateRenderError(f"cannot render worker for {namespace}: {exc}") from exc
