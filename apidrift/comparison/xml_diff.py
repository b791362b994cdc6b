"""
Tree diff of two XML documents.

Whitespace-only text between elements is ignored, comments optionally.
Text is compared trimmed, and adjacent text or CDATA nodes compare as one.
Elements are compared by namespace URI and local name, then attributes
(namespace declarations excluded), then children in document order.
Locations are reported as XPath expressions like "/root[1]/item[2]/@id".
"""

from typing import Any, Dict, List, Optional
from xml.dom import Node, minidom

from apidrift.domain.result import Difference, DifferenceKind

XMLNS_URI = "http://www.w3.org/2000/xmlns/"

_NODE_LABELS = {
    Node.ELEMENT_NODE: "element",
    Node.TEXT_NODE: "text",
    Node.CDATA_SECTION_NODE: "text",
    Node.COMMENT_NODE: "comment",
    Node.PROCESSING_INSTRUCTION_NODE: "processing-instruction",
}

_TEXT_TYPES = (Node.TEXT_NODE, Node.CDATA_SECTION_NODE)


class _DifferenceLimitReached(Exception):
    pass


def parse_xml(text: str) -> Any:
    """Parse XML text into a DOM document."""
    return minidom.parseString(text)


def _significant_children(node: Any, ignore_comments: bool) -> List[Any]:
    children: List[Any] = []
    for child in node.childNodes:
        if child.nodeType == Node.COMMENT_NODE and ignore_comments:
            continue
        # text split by a dropped comment, or next to CDATA, compares as one node
        if child.nodeType in _TEXT_TYPES and children and children[-1].nodeType in _TEXT_TYPES:
            children[-1] = node.ownerDocument.createTextNode(children[-1].data + child.data)
            continue
        children.append(child)
    return [
        child
        for child in children
        if not (child.nodeType in _TEXT_TYPES and not child.data.strip())
    ]


def _name(node: Any) -> str:
    return node.localName or node.nodeName


def _qualified(node: Any) -> str:
    if node.namespaceURI:
        return f"{{{node.namespaceURI}}}{_name(node)}"
    return _name(node)


def _attributes(element: Any) -> Dict[str, str]:
    result: Dict[str, str] = {}
    attributes = element.attributes
    for index in range(attributes.length):
        attr = attributes.item(index)
        if attr.namespaceURI == XMLNS_URI or attr.name == "xmlns" or attr.name.startswith("xmlns:"):
            continue
        key = f"{{{attr.namespaceURI}}}{attr.localName}" if attr.namespaceURI else attr.name
        result[key] = attr.value
    return result


def _step(node: Any, siblings: List[Any]) -> str:
    if node.nodeType == Node.ELEMENT_NODE:
        same = [s for s in siblings if s.nodeType == Node.ELEMENT_NODE and _qualified(s) == _qualified(node)]
        return f"{_name(node)}[{same.index(node) + 1}]"
    if node.nodeType in _TEXT_TYPES:
        same = [s for s in siblings if s.nodeType in _TEXT_TYPES]
        return f"text()[{same.index(node) + 1}]"
    if node.nodeType == Node.COMMENT_NODE:
        same = [s for s in siblings if s.nodeType == Node.COMMENT_NODE]
        return f"comment()[{same.index(node) + 1}]"
    same = [s for s in siblings if s.nodeType == node.nodeType]
    return f"node()[{same.index(node) + 1}]"


def _describe(node: Any) -> str:
    if node.nodeType == Node.ELEMENT_NODE:
        return f"<{node.nodeName}...>"
    if node.nodeType in (Node.TEXT_NODE, Node.CDATA_SECTION_NODE, Node.COMMENT_NODE):
        return f"'{node.data.strip()}'"
    return node.nodeName


class XmlDiffer:
    """
    Collects differences between two DOM documents.

    Attributes:
        ignore_comments: Skip comment nodes on both sides
        max_differences: Stop after this many differences (None = unlimited)
    """

    def __init__(self, ignore_comments: bool = False, max_differences: Optional[int] = 5):
        self.ignore_comments = ignore_comments
        self.max_differences = max_differences
        self.differences: List[Difference] = []

    def diff(self, expected_doc: Any, actual_doc: Any) -> List[Difference]:
        self.differences = []
        try:
            self._compare_element(
                expected_doc.documentElement,
                actual_doc.documentElement,
                f"/{_name(expected_doc.documentElement)}[1]",
                f"/{_name(actual_doc.documentElement)}[1]",
            )
        except _DifferenceLimitReached:
            pass
        return self.differences

    def _add(self, path: str, kind: DifferenceKind, detail: str) -> None:
        self.differences.append(Difference(path, kind, detail))
        if self.max_differences is not None and len(self.differences) >= self.max_differences:
            raise _DifferenceLimitReached()

    def _compare_element(self, expected: Any, actual: Any, path: str, actual_path: str) -> None:
        if _qualified(expected) != _qualified(actual):
            self._add(
                path,
                DifferenceKind.VALUE_MISMATCH,
                f"Expected element name '{expected.nodeName}' but was '{actual.nodeName}' - "
                f"comparing {_describe(expected)} at {path} to {_describe(actual)} at {actual_path}",
            )
            return

        self._compare_attributes(expected, actual, path)
        self._compare_children(expected, actual, path, actual_path)

    def _compare_attributes(self, expected: Any, actual: Any, path: str) -> None:
        expected_attrs = _attributes(expected)
        actual_attrs = _attributes(actual)

        for key, value in expected_attrs.items():
            attr_path = f"{path}/@{key}"
            if key not in actual_attrs:
                self._add(
                    attr_path,
                    DifferenceKind.MISSING_IN_RIGHT,
                    f"Expected attribute '{key}' but was missing - comparing at {attr_path}",
                )
            elif actual_attrs[key] != value:
                self._add(
                    attr_path,
                    DifferenceKind.VALUE_MISMATCH,
                    f"Expected attribute value '{value}' but was '{actual_attrs[key]}' - "
                    f"comparing at {attr_path}",
                )

        for key in actual_attrs:
            if key not in expected_attrs:
                attr_path = f"{path}/@{key}"
                self._add(
                    attr_path,
                    DifferenceKind.MISSING_IN_LEFT,
                    f"Unexpected attribute '{key}' - comparing at {attr_path}",
                )

    def _compare_children(self, expected: Any, actual: Any, path: str, actual_path: str) -> None:
        expected_children = _significant_children(expected, self.ignore_comments)
        actual_children = _significant_children(actual, self.ignore_comments)

        if len(expected_children) != len(actual_children):
            self._add(
                path,
                DifferenceKind.VALUE_MISMATCH,
                f"Expected child nodelist length '{len(expected_children)}' but was "
                f"'{len(actual_children)}' - comparing {_describe(expected)} at {path} "
                f"to {_describe(actual)} at {actual_path}",
            )

        for index in range(max(len(expected_children), len(actual_children))):
            if index >= len(actual_children):
                child = expected_children[index]
                child_path = f"{path}/{_step(child, expected_children)}"
                self._add(
                    child_path,
                    DifferenceKind.MISSING_IN_RIGHT,
                    f"Expected child {_describe(child)} but was missing - comparing at {child_path}",
                )
                continue
            if index >= len(expected_children):
                child = actual_children[index]
                child_path = f"{actual_path}/{_step(child, actual_children)}"
                self._add(
                    child_path,
                    DifferenceKind.MISSING_IN_LEFT,
                    f"Unexpected child {_describe(child)} - comparing at {child_path}",
                )
                continue

            self._compare_node(
                expected_children[index],
                actual_children[index],
                f"{path}/{_step(expected_children[index], expected_children)}",
                f"{actual_path}/{_step(actual_children[index], actual_children)}",
            )

    def _compare_node(self, expected: Any, actual: Any, path: str, actual_path: str) -> None:
        expected_label = _NODE_LABELS.get(expected.nodeType, "node")
        actual_label = _NODE_LABELS.get(actual.nodeType, "node")

        if expected_label != actual_label:
            self._add(
                path,
                DifferenceKind.VALUE_MISMATCH,
                f"Expected node type '{expected_label}' but was '{actual_label}' - "
                f"comparing {_describe(expected)} at {path} to {_describe(actual)} at {actual_path}",
            )
            return

        if expected.nodeType == Node.ELEMENT_NODE:
            self._compare_element(expected, actual, path, actual_path)
        elif expected_label in ("text", "comment"):
            expected_text, actual_text = expected.data.strip(), actual.data.strip()
            if expected_text != actual_text:
                self._add(
                    path,
                    DifferenceKind.VALUE_MISMATCH,
                    f"Expected {expected_label} value '{expected_text}' but was '{actual_text}' - "
                    f"comparing at {path}",
                )
        elif expected.nodeType == Node.PROCESSING_INSTRUCTION_NODE:
            if (expected.target, expected.data) != (actual.target, actual.data):
                self._add(
                    path,
                    DifferenceKind.VALUE_MISMATCH,
                    f"Expected processing instruction '{expected.target} {expected.data}' but was "
                    f"'{actual.target} {actual.data}' - comparing at {path}",
                )


def diff_xml(
    expected: str,
    actual: str,
    ignore_comments: bool = False,
    max_differences: Optional[int] = 5,
) -> List[Difference]:
    """
    Parse and diff two XML payloads.

    Raises:
        xml.parsers.expat.ExpatError: If either payload is not well-formed
    """
    expected_doc = parse_xml(expected)
    actual_doc = parse_xml(actual)
    try:
        return XmlDiffer(ignore_comments, max_differences).diff(expected_doc, actual_doc)
    finally:
        expected_doc.unlink()
        actual_doc.unlink()
