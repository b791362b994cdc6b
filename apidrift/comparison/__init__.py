"""Comparison engine - JSON and XML structural diffs and verdicts."""

from .engine import DEFAULT_MAX_XML_DIFFERENCES, compare, compare_result
from .json_diff import diff_json, json_equal
from .xml_diff import XmlDiffer, diff_xml

__all__ = [
    "DEFAULT_MAX_XML_DIFFERENCES",
    "compare",
    "compare_result",
    "diff_json",
    "json_equal",
    "XmlDiffer",
    "diff_xml",
]
