"""
Comparison engine.

Compares two response payloads (JSON or XML) and produces a verdict with
path-addressed differences. Comparison never raises: absent responses and
unexpected failures become ERROR verdicts, and unparseable payloads fall
back to literal text equality unless strict parsing is requested.
"""

import json
from typing import Optional, Union
from xml.parsers.expat import ExpatError

from apidrift.comparison.json_diff import diff_json, json_equal
from apidrift.comparison.xml_diff import diff_xml
from apidrift.domain.result import (
    ComparisonResult,
    ComparisonStatus,
    ComparisonVerdict,
    Difference,
    DifferenceKind,
)
from apidrift.templating.payload import PayloadFormat
from apidrift.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_XML_DIFFERENCES = 5


def _safe_string_equals(left: str, right: str) -> bool:
    return left.strip() == right.strip()


def _literal_fallback(
    response1: str, response2: str, fmt: PayloadFormat, error: Exception, lenient: bool
) -> ComparisonVerdict:
    if not lenient:
        return ComparisonVerdict.error(f"{fmt.value} parsing failed: {error}")

    if _safe_string_equals(response1, response2):
        return ComparisonVerdict.match()

    if fmt is PayloadFormat.XML:
        detail = "XML Parsing failed, and strings differ."
        path = "/"
    else:
        detail = "JSON Parsing failed (possible HTML response?), and strings differ."
        path = "$"
    return ComparisonVerdict.mismatch([Difference(path, DifferenceKind.VALUE_MISMATCH, detail)])


def _compare_json(response1: str, response2: str, lenient: bool) -> ComparisonVerdict:
    try:
        left = json.loads(response1)
        right = json.loads(response2)
    except ValueError as e:
        return _literal_fallback(response1, response2, PayloadFormat.JSON, e, lenient)

    if json_equal(left, right):
        return ComparisonVerdict.match()
    return ComparisonVerdict.mismatch(diff_json(left, right))


def _compare_xml(
    response1: str,
    response2: str,
    ignore_comments: bool,
    max_differences: Optional[int],
    lenient: bool,
) -> ComparisonVerdict:
    try:
        differences = diff_xml(response1, response2, ignore_comments, max_differences)
    except (ExpatError, ValueError) as e:
        return _literal_fallback(response1, response2, PayloadFormat.XML, e, lenient)

    if not differences:
        return ComparisonVerdict.match()
    return ComparisonVerdict.mismatch(differences)


def compare(
    response1: Optional[str],
    response2: Optional[str],
    fmt: Union[PayloadFormat, str],
    *,
    ignore_comments: bool = False,
    max_xml_differences: Optional[int] = DEFAULT_MAX_XML_DIFFERENCES,
    lenient: bool = True,
) -> ComparisonVerdict:
    """
    Compare two response payloads.

    Args:
        response1: Left response (API 1 or the live call)
        response2: Right response (API 2 or the stored baseline)
        fmt: PayloadFormat, or a test type name ("REST"/"SOAP")
        ignore_comments: Ignore XML comments (baseline comparisons)
        max_xml_differences: Cap on reported XML differences; None for no cap
        lenient: Fall back to trimmed text equality when a payload
            cannot be parsed; when False a parse failure is an ERROR

    Returns:
        ComparisonVerdict. MATCH carries no differences, ERROR carries a
        message.
    """
    if response1 is None or response2 is None:
        return ComparisonVerdict.error("One or both API responses are null.")

    if not isinstance(fmt, PayloadFormat):
        fmt = PayloadFormat.for_test_type(fmt)

    try:
        if fmt is PayloadFormat.XML:
            return _compare_xml(response1, response2, ignore_comments, max_xml_differences, lenient)
        return _compare_json(response1, response2, lenient)
    except Exception as e:
        logger.error(
            "Failed to parse or compare responses",
            operation="compare_responses",
            context={"format": fmt.value},
            error=str(e),
        )
        return ComparisonVerdict.error(f"Error during response comparison: {e}")


def compare_result(
    result: ComparisonResult,
    test_type: Optional[str],
    *,
    ignore_comments: bool = False,
    max_xml_differences: Optional[int] = DEFAULT_MAX_XML_DIFFERENCES,
) -> ComparisonVerdict:
    """
    Compare the two API calls recorded on a result and apply the verdict.

    A missing API call on either side yields an ERROR verdict.
    """
    if result.api1 is None or result.api2 is None:
        verdict = ComparisonVerdict.error("One or both API calls failed, cannot compare.")
    else:
        verdict = compare(
            result.api1.response_payload,
            result.api2.response_payload,
            PayloadFormat.for_test_type(test_type),
            ignore_comments=ignore_comments,
            max_xml_differences=max_xml_differences,
        )

    result.apply_verdict(verdict)
    if verdict.status is ComparisonStatus.MISMATCH:
        logger.info(
            "Responses differ",
            operation="compare_responses",
            context={
                "operation_name": result.operation_name,
                "difference_count": len(verdict.differences),
            },
        )
    return verdict
