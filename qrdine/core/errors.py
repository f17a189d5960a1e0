"""
Error formatting shared by the exception handlers and bulk imports.
"""

from typing import Any, Iterable


def error_location(loc: Iterable[Any]) -> str:
    """Dotted field path without the leading ``body``/``query`` segment."""
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts)


def describe_validation_errors(errors: list[dict[str, Any]]) -> str:
    """
    One-line message for a list of pydantic errors: ``"<field>: <msg>"``
    for the first error, the bare message when it has no field.
    """
    if not errors:
        return "Validation error"

    first = errors[0]
    message = str(first.get("msg", "Invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]

    field = error_location(first.get("loc", ()))
    return f"{field}: {message}" if field else message
