"""
Payload templating.

Rewrites JSON or XML request templates by matching token names against
member/element names. A token matches a field when its name is a
case-insensitive substring of the field name; the first matching token
in assignment order wins. Existing fixtures depend on this substring
behaviour, so it must not be tightened to exact matching.

Rendering never raises: if the template cannot be parsed the literal
template text is returned, tagged as a fallback so callers can tell a
degraded render from a successful one.
"""

import json
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Tuple
from xml.dom import Node, minidom

from apidrift.utils.logger import get_logger

logger = get_logger(__name__)


class PayloadFormat(Enum):
    """Structured payload format."""

    JSON = "JSON"
    XML = "XML"

    @classmethod
    def for_test_type(cls, test_type: Optional[str]) -> "PayloadFormat":
        """SOAP services exchange XML; everything else is treated as JSON."""
        if test_type and str(test_type).strip().upper() in ("SOAP", "XML"):
            return cls.XML
        return cls.JSON


@dataclass(frozen=True)
class RenderResult:
    """Base type of a render outcome."""

    text: str

    @property
    def fell_back(self) -> bool:
        return False


@dataclass(frozen=True)
class Rendered(RenderResult):
    """Template parsed and tokens substituted."""


@dataclass(frozen=True)
class FellBackToLiteral(RenderResult):
    """Template could not be rendered; text is the unmodified template."""

    reason: str = ""

    @property
    def fell_back(self) -> bool:
        return True


def load_template(template_source: Optional[str]) -> str:
    """
    Resolve a template argument to template text.

    An existing regular file is read; anything else (missing path,
    directory, a string that is not a valid path at all) is treated as the
    literal template. Never raises.
    """
    if template_source is None:
        return ""

    try:
        if os.path.isfile(template_source):
            with open(template_source, "r", encoding="utf-8") as f:
                return f.read()
    except (OSError, ValueError) as e:
        logger.debug(
            "Template source is not a readable file, using it as literal text",
            operation="load_template",
            context={"error": str(e)},
        )
    return template_source


def _find_token(name: str, assignment: Mapping[str, Any]) -> Optional[Tuple[str, Any]]:
    lowered = name.lower()
    for token_name, value in assignment.items():
        if str(token_name).lower() in lowered:
            return token_name, value
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _replace_json(node: Any, assignment: Mapping[str, Any]) -> None:
    if isinstance(node, dict):
        for field_name in list(node.keys()):
            child = node[field_name]
            match = _find_token(field_name, assignment)
            if match is not None:
                _, value = match
                if _is_number(value) and _is_number(child):
                    node[field_name] = float(value)
                else:
                    node[field_name] = _as_text(value)
                continue
            _replace_json(child, assignment)
    elif isinstance(node, list):
        for element in node:
            _replace_json(element, assignment)


def _render_json(template: str, assignment: Mapping[str, Any]) -> str:
    root = json.loads(template)
    _replace_json(root, assignment)
    return json.dumps(root, ensure_ascii=False, separators=(",", ":"))


def _set_text_content(element: Any, text: str) -> None:
    while element.firstChild is not None:
        element.removeChild(element.firstChild)
    element.appendChild(element.ownerDocument.createTextNode(text))


def _replace_xml(node: Any, assignment: Mapping[str, Any]) -> None:
    for child in list(node.childNodes):
        if child.nodeType == Node.ELEMENT_NODE:
            match = _find_token(child.nodeName, assignment)
            if match is not None:
                _set_text_content(child, _as_text(match[1]))
                continue
            _replace_xml(child, assignment)


def _render_xml(template: str, assignment: Mapping[str, Any]) -> str:
    document = minidom.parseString(template)
    try:
        _replace_xml(document.documentElement, assignment)
        return document.toxml()
    finally:
        document.unlink()


def render(
    template_source: Optional[str],
    fmt: PayloadFormat,
    assignment: Mapping[str, Any],
) -> RenderResult:
    """
    Render a template for one iteration.

    Args:
        template_source: Template text or a path to a template file
        fmt: PayloadFormat of the template
        assignment: Token name -> value for this iteration

    Returns:
        Rendered with the substituted payload, or FellBackToLiteral with
        the original template text when rendering failed
    """
    template = load_template(template_source)
    return PayloadTemplater(template, fmt).process(assignment)


class PayloadTemplater:
    """
    A loaded template bound to its format, reusable across iterations.

    Attributes:
        template: Template text (already resolved from a path if needed)
        fmt: PayloadFormat used to parse the template
    """

    def __init__(self, template: str, fmt: PayloadFormat):
        self.template = template or ""
        self.fmt = fmt

    @classmethod
    def from_source(cls, template_source: Optional[str], fmt: PayloadFormat) -> "PayloadTemplater":
        return cls(load_template(template_source), fmt)

    def process(self, assignment: Mapping[str, Any]) -> RenderResult:
        """Substitute the assignment into the template."""
        if not self.template.strip():
            return Rendered("")

        try:
            if self.fmt is PayloadFormat.XML:
                return Rendered(_render_xml(self.template, assignment))
            return Rendered(_render_json(self.template, assignment))
        except Exception as e:
            logger.warning(
                "Payload template could not be rendered, using literal template",
                operation="render_payload",
                context={"format": self.fmt.value, "tokens": sorted(assignment.keys())},
                error=str(e),
            )
            return FellBackToLiteral(self.template, reason=str(e))
