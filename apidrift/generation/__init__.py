"""Iteration generation - token specs to ordered assignments."""

from .iterations import (
    IterationAssignment,
    IterationStrategy,
    TokenSpec,
    generate,
    with_original_payload,
)

__all__ = [
    "IterationAssignment",
    "IterationStrategy",
    "TokenSpec",
    "generate",
    "with_original_payload",
]
