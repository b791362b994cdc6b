"""Diff Reporter - Write structured comparison results and markdown summaries."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from apidrift.domain.result import ComparisonResult, ComparisonStatus
from apidrift.utils.logger import get_logger
from apidrift.utils.timezone import iso_timestamp

logger = get_logger(__name__)

DEFAULT_RESULTS_DIR = Path("reports")
RESULTS_FILE = "results.json"
SUMMARY_FILE = "SUMMARY.md"

STATUS_MARKERS = {
    ComparisonStatus.MATCH: "✅",
    ComparisonStatus.MISMATCH: "❌",
    ComparisonStatus.ERROR: "🚨",
}


def summarize(results: List[ComparisonResult]) -> Dict[str, Any]:
    """Counts per status plus an overall PASS/FAIL."""
    matches = sum(1 for r in results if r.status is ComparisonStatus.MATCH)
    mismatches = sum(1 for r in results if r.status is ComparisonStatus.MISMATCH)
    errors = sum(1 for r in results if r.status is ComparisonStatus.ERROR)
    fell_back = sum(1 for r in results if r.payload_fell_back)
    return {
        "total_results": len(results),
        "matches": matches,
        "mismatches": mismatches,
        "errors": errors,
        "payload_fallbacks": fell_back,
        "parity_status": "PASS" if results and matches == len(results) else "FAIL",
        "timestamp": iso_timestamp(),
    }


class DiffReporter:
    """Generate comparison artifacts (JSON + Markdown) for one run."""

    def __init__(self, output_dir: Path | str | None = None) -> None:
        self.output_dir = Path(output_dir) if output_dir is not None else DEFAULT_RESULTS_DIR
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate_json_report(
        self,
        results: List[ComparisonResult],
        stats: Dict[str, Any],
        run_context: Dict[str, Any] | None = None,
    ) -> str:
        report = {
            "metadata": {
                "generated_at": iso_timestamp(),
                **(run_context or {}),
            },
            "statistics": stats,
            "results": [result.to_dict() for result in results],
        }
        return json.dumps(report, indent=2, default=str, ensure_ascii=False)

    def generate_markdown_summary(
        self,
        results: List[ComparisonResult],
        stats: Dict[str, Any],
        run_context: Dict[str, Any] | None = None,
    ) -> str:
        context = run_context or {}
        md_lines = [
            "# API Comparison Report",
            f"**Mode:** {context.get('mode', 'LIVE')}",
            f"**Test Type:** {context.get('test_type', 'unknown')}",
            f"**Generated:** {iso_timestamp()}",
            "",
            "## Summary",
            f"- **Total Results:** {stats['total_results']}",
            f"- **Matches:** {stats['matches']} ✅",
            f"- **Mismatches:** {stats['mismatches']} ❌",
            f"- **Errors:** {stats['errors']} 🚨",
            f"- **Parity Status:** {stats['parity_status']}",
            "",
        ]

        if stats.get("payload_fallbacks"):
            md_lines.append(
                f"> {stats['payload_fallbacks']} payload(s) could not be templated and were sent as-is."
            )
            md_lines.append("")

        md_lines.append("## Results")
        md_lines.append("")
        for result in results:
            marker = STATUS_MARKERS.get(result.status, "")
            tokens = ", ".join(f"{k}={v}" for k, v in result.iteration_tokens.items()) or "-"
            md_lines.append(f"{marker} **{result.operation_name}** [{result.status.value}] tokens: {tokens}")
            if result.baseline_path:
                md_lines.append(f"  - Baseline: `{result.baseline_path}`")
            if result.error_message:
                md_lines.append(f"  - Error: {result.error_message}")
            for difference in result.differences:
                md_lines.append(f"  - {difference}")

        if stats["parity_status"] == "PASS":
            md_lines.extend(["", "Perfect Parity ✅"])

        md_lines.extend(["", "---", "*Generated by apidrift*"])
        return "\n".join(md_lines)

    def write_reports(
        self,
        results: List[ComparisonResult],
        run_context: Dict[str, Any] | None = None,
    ) -> Tuple[Path, Path]:
        stats = summarize(results)
        json_path = self.output_dir / RESULTS_FILE
        md_path = self.output_dir / SUMMARY_FILE

        json_path.write_text(self.generate_json_report(results, stats, run_context), encoding="utf-8")
        md_path.write_text(self.generate_markdown_summary(results, stats, run_context), encoding="utf-8")

        logger.info(
            "Wrote comparison reports",
            operation="write_reports",
            context={"json": str(json_path), "markdown": str(md_path), "parity_status": stats["parity_status"]},
        )
        return json_path, md_path
