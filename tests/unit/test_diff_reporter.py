"""
Unit tests for DiffReporter (apidrift/reporting/diff_reporter.py)
"""

import json

from apidrift.domain.result import (
    ApiCallResult,
    ComparisonResult,
    ComparisonStatus,
    Difference,
    DifferenceKind,
)
from apidrift.reporting.diff_reporter import DiffReporter, summarize


def _result(name, status, differences=None, error=None, **extra):
    result = ComparisonResult(
        operation_name=name,
        iteration_tokens={"id": 1},
        status=status,
        differences=differences or [],
        error_message=error,
        timestamp="2025-10-19 10:00:00",
        **extra,
    )
    return result


class TestSummarize:
    """Tests for run statistics."""

    def test_counts_by_status(self):
        """Test each status is counted."""
        results = [
            _result("a", ComparisonStatus.MATCH),
            _result(
                "b",
                ComparisonStatus.MISMATCH,
                [Difference("$.x", DifferenceKind.VALUE_MISMATCH, "Values differ at $.x. API 1: 1, API 2: 2")],
            ),
            _result("c", ComparisonStatus.ERROR, error="boom"),
        ]

        stats = summarize(results)

        assert stats["total_results"] == 3
        assert stats["matches"] == 1
        assert stats["mismatches"] == 1
        assert stats["errors"] == 1
        assert stats["parity_status"] == "FAIL"

    def test_all_match_passes(self):
        """Test parity passes only when every result matched."""
        assert summarize([_result("a", ComparisonStatus.MATCH)])["parity_status"] == "PASS"

    def test_empty_run_fails(self):
        """Test a run without results does not pass."""
        assert summarize([])["parity_status"] == "FAIL"


class TestDiffReporter:
    """Tests for report generation."""

    def test_write_reports(self, tmp_path):
        """Test JSON and Markdown reports are written."""
        reporter = DiffReporter(tmp_path / "reports")
        results = [
            _result(
                "getUser",
                ComparisonStatus.MISMATCH,
                [Difference("$.extra", DifferenceKind.MISSING_IN_LEFT, "Missing field in API 1: $.extra")],
                api1=ApiCallResult(url="http://a/users", status_code=200, response_payload="{}"),
            ),
            _result("getUser", ComparisonStatus.ERROR, error="Operation failed: timeout"),
        ]

        json_path, md_path = reporter.write_reports(results, {"mode": "LIVE", "test_type": "REST"})

        report = json.loads(json_path.read_text(encoding="utf-8"))
        assert json_path.name == "results.json"
        assert report["metadata"]["mode"] == "LIVE"
        assert report["statistics"]["mismatches"] == 1
        assert report["results"][0]["status"] == "MISMATCH"
        assert report["results"][0]["differences"] == [
            {
                "path": "$.extra",
                "kind": "missing-in-left",
                "detail": "Missing field in API 1: $.extra",
            }
        ]
        assert report["results"][0]["api1"]["url"] == "http://a/users"
        assert "error_message" not in report["results"][0]

        summary = md_path.read_text(encoding="utf-8")
        assert md_path.name == "SUMMARY.md"
        assert "**Parity Status:** FAIL" in summary
        assert "Missing field in API 1: $.extra" in summary
        assert "Error: Operation failed: timeout" in summary

    def test_perfect_parity_summary(self, tmp_path):
        """Test an all-match run is marked as perfect parity."""
        reporter = DiffReporter(tmp_path)

        summary = reporter.generate_markdown_summary(
            [_result("a", ComparisonStatus.MATCH)],
            summarize([_result("a", ComparisonStatus.MATCH)]),
        )

        assert "Perfect Parity" in summary

    def test_baseline_provenance_in_summary(self, tmp_path):
        """Test baseline paths are shown for baseline results."""
        reporter = DiffReporter(tmp_path)
        result = _result("op", ComparisonStatus.MATCH, baseline_path="baselines/users/20251019/run-001")

        summary = reporter.generate_markdown_summary([result], summarize([result]))

        assert "baselines/users/20251019/run-001" in summary

    def test_fallback_note(self, tmp_path):
        """Test payload fallbacks are called out."""
        reporter = DiffReporter(tmp_path)
        result = _result("op", ComparisonStatus.MATCH, payload_fell_back=True)

        summary = reporter.generate_markdown_summary([result], summarize([result]))

        assert "could not be templated" in summary
