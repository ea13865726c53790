"""Validation of module manifests contributed from outside this package.

External packages expose a ``manifest`` attribute that is either a
``ModuleManifest`` or a plain mapping.  Nothing from such a package (template
paths, ``is_enabled`` predicates) is used before it passes through
:func:`validate_external_manifest`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from appforge.errors import InvalidManifestError

from .models import ModuleManifest

# Pydantic would accept these as sequences of ids; a manifest must not.
_ID_SEQUENCE_FIELDS = ("requires", "conflicts_with")


def validate_external_manifest(value: Any, source: str) -> ModuleManifest:
    """Validate an untrusted manifest value coming from *source*.

    Field constraints (non-empty ``id``/``name``, ``phase`` in 1..4, typed
    contributions) live on ``ModuleManifest``; this adds the shape checks
    the model cannot express and turns pydantic's report into an
    ``InvalidManifestError``.

    Args:
        value: The object exported by an external module package.
        source: Human-readable label (usually the package name) used in
            error messages.

    Returns:
        The manifest as a trusted ``ModuleManifest``.

    Raises:
        InvalidManifestError: Naming *source* and the first violated field.
    """
    if isinstance(value, ModuleManifest):
        return value

    if not isinstance(value, Mapping):
        raise InvalidManifestError(source, "manifest", "must be a mapping")

    for field in _ID_SEQUENCE_FIELDS:
        if field in value and (
            isinstance(value[field], (str, bytes, Mapping))
            or not isinstance(value[field], (list, tuple))
        ):
            raise InvalidManifestError(source, field, "must be a sequence of module ids")

    try:
        return ModuleManifest.model_validate(dict(value))
    except ValidationError as exc:
        error = exc.errors()[0]
        raise InvalidManifestError(
            source, _field_path(error["loc"]), error["msg"].lower()
        ) from exc


def _field_path(loc: tuple[Any, ...]) -> str:
    """``('requires', 1)`` -> ``'requires'``; list indices are dropped."""
    return ".".join(part for part in loc if isinstance(part, str)) or "manifest"
