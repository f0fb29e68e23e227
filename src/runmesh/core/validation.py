"""
Schema capability used by tools and structured output.

A *schema* is anything pydantic can build a :class:`~pydantic.TypeAdapter` for, typically a
:class:`~pydantic.BaseModel` subclass.  This module validates values against it and derives the
JSON-Schema document advertised to the model.
"""

import json
import logging
import re
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    TypeAdapter,
    ValidationError,
)

from runmesh.core.errors import SchemaValidationFailed

logger = logging.getLogger(__name__)

_REF_PATTERN = re.compile(r"^#/(\$defs|definitions)/(.+)$")


class ValidationResult(BaseModel):
    """Outcome of :func:`validate`."""

    success: bool
    data: Any = None
    errors: Optional[List[Dict[str, Any]]] = None


def _adapter(schema: Any) -> TypeAdapter:
    if isinstance(schema, TypeAdapter):
        return schema
    return TypeAdapter(schema)


def validate(schema: Any, value: Any) -> ValidationResult:
    """Validate *value* against *schema* without raising."""
    try:
        data = _adapter(schema).validate_python(value)
    except ValidationError as exc:
        return ValidationResult(success=False, errors=exc.errors(include_url=False))
    return ValidationResult(success=True, data=data)


def assert_valid(schema: Any, value: Any) -> Any:
    """
    Validate *value* against *schema* and return the validated value.

    Raises
    ------
    SchemaValidationFailed
        With the pydantic :class:`~pydantic.ValidationError` as cause.
    """
    try:
        return _adapter(schema).validate_python(value)
    except ValidationError as exc:
        raise SchemaValidationFailed("Data validation failed", exc) from exc


# ---------------------------------------------------------------------------
# JSON-Schema derivation
# ---------------------------------------------------------------------------
def to_json_schema(schema: Any, title: str | None = None) -> Dict[str, Any]:
    """Derive a normalized JSON-Schema document from *schema*."""
    document = normalize_json_schema(_adapter(schema).json_schema())
    if title:
        document = {**document, "title": title}
    return document


def normalize_json_schema(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Resolve a root ``$ref`` into the node it points at and make sure the root is an object.

    The definitions stay attached when other nodes may still reference them.
    """
    ref = document.get("$ref")
    if isinstance(ref, str):
        match = _REF_PATTERN.match(ref)
        if match:
            defs_key, name = match.groups()
            defs = document.get(defs_key)
            if isinstance(defs, dict) and isinstance(defs.get(name), dict):
                resolved = dict(defs[name])
                if len(defs) > 1 or ref in json.dumps(resolved):
                    resolved[defs_key] = defs
                return _ensure_object_type(resolved)
        logger.debug("Leaving unresolvable root reference %r in place", ref)
    return _ensure_object_type(document)


def _ensure_object_type(document: Dict[str, Any]) -> Dict[str, Any]:
    if "type" not in document and "properties" in document:
        return {**document, "type": "object"}
    return document
