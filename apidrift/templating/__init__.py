"""Payload templating - token substitution into JSON/XML request bodies."""

from .payload import (
    FellBackToLiteral,
    PayloadFormat,
    PayloadTemplater,
    Rendered,
    RenderResult,
    load_template,
    render,
)

__all__ = [
    "FellBackToLiteral",
    "PayloadFormat",
    "PayloadTemplater",
    "Rendered",
    "RenderResult",
    "load_template",
    "render",
]
