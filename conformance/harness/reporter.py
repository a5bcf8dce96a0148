"""
Report generation for messenger conformance runs.
"""

import json
import os
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from comparator import ComparisonResult, Divergence


@dataclass
class TestResult:
    """Outcome of replaying one vector on every client."""
    vector_name: str
    suite_name: str
    passed: bool
    execution_time_ms: float
    comparison: Optional[ComparisonResult] = None
    error: Optional[str] = None

    @property
    def divergences(self) -> List[Divergence]:
        if self.comparison is None:
            return []
        return self.comparison.divergences


@dataclass
class SuiteResult:
    """Outcome of one vector file."""
    suite_name: str
    total_tests: int
    passed_tests: int
    failed_tests: int
    skipped_tests: int
    execution_time_ms: float
    test_results: List[TestResult]

    @property
    def pass_rate(self) -> float:
        if self.total_tests == 0:
            return 0.0
        return self.passed_tests / self.total_tests * 100

    @property
    def failures(self) -> List[TestResult]:
        return [t for t in self.test_results if not t.passed]


@dataclass
class ConformanceReport:
    """Aggregated results of a run."""
    timestamp: str
    clients: List[str]
    reference_client: str
    suite_results: List[SuiteResult]
    execution_time_ms: float
    divergences: List[Divergence] = field(default_factory=list)

    @property
    def total_tests(self) -> int:
        return sum(s.total_tests for s in self.suite_results)

    @property
    def total_passed(self) -> int:
        return sum(s.passed_tests for s in self.suite_results)

    @property
    def total_failed(self) -> int:
        return sum(s.failed_tests for s in self.suite_results)

    @property
    def total_skipped(self) -> int:
        return sum(s.skipped_tests for s in self.suite_results)

    @property
    def total_divergences(self) -> int:
        return len(self.divergences)

    @property
    def pass_rate(self) -> float:
        return self.total_passed / max(self.total_tests, 1) * 100

    def divergences_by_field(self) -> Dict[str, int]:
        """Count divergences per compared field (success, error_code, events, state_digest)."""
        return dict(sorted(Counter(d.field for d in self.divergences).items()))

    def divergences_by_client(self) -> Dict[str, int]:
        return dict(sorted(Counter(d.client for d in self.divergences).items()))


class ReportGenerator:
    """Writes conformance reports to a result directory."""

    def __init__(self, result_dir: str):
        self.result_dir = result_dir
        os.makedirs(result_dir, exist_ok=True)

    def generate_report(
        self,
        suite_results: List[SuiteResult],
        clients: List[str],
        reference_client: str,
        execution_time_ms: float,
    ) -> ConformanceReport:
        """Aggregate suite results and collect every divergence."""
        divergences = [
            div
            for suite in suite_results
            for test in suite.test_results
            for div in test.divergences
        ]

        return ConformanceReport(
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            clients=clients,
            reference_client=reference_client,
            suite_results=suite_results,
            execution_time_ms=execution_time_ms,
            divergences=divergences,
        )

    def write_json_report(
        self,
        report: ConformanceReport,
        filename: str = "conformance-report.json",
    ) -> str:
        """Write the report as JSON and return its path."""
        path = os.path.join(self.result_dir, filename)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self._report_to_dict(report), f, indent=2)
        return path

    def write_summary(
        self,
        report: ConformanceReport,
        filename: str = "conformance-summary.txt",
    ) -> str:
        """Write a human-readable summary and return its path."""
        path = os.path.join(self.result_dir, filename)
        with open(path, "w", encoding="utf-8") as f:
            f.write("\n".join(self.summary_lines(report, detailed=True)))
        return path

    def print_summary(self, report: ConformanceReport) -> None:
        """Print summary to console."""
        print()
        print("\n".join(self.summary_lines(report, detailed=False)))

    def summary_lines(self, report: ConformanceReport, detailed: bool) -> List[str]:
        lines = [
            "=" * 60,
            "Messenger Conformance Report",
            "=" * 60,
            f"Timestamp: {report.timestamp}",
            f"Clients:   {', '.join(report.clients)}",
            f"Reference: {report.reference_client}",
            "",
            f"Vectors run:  {report.total_tests}",
            f"Passed:       {report.total_passed}",
            f"Failed:       {report.total_failed}",
            f"Skipped:      {report.total_skipped}",
            f"Pass rate:    {report.pass_rate:.1f}%",
            f"Duration:     {report.execution_time_ms:.2f}ms",
            "",
            "Suites:",
        ]

        for suite in report.suite_results:
            status = "PASS" if suite.failed_tests == 0 else "FAIL"
            lines.append(
                f"  [{status}] {suite.suite_name}: "
                f"{suite.passed_tests}/{suite.total_tests}"
                + (f" (skipped {suite.skipped_tests})" if suite.skipped_tests else "")
            )
            for test in suite.failures:
                if test.error:
                    lines.append(f"      {test.vector_name}: {test.error}")

        if report.divergences:
            lines.append("")
            lines.append("Divergences by field:")
            for name, count in report.divergences_by_field().items():
                lines.append(f"  {name}: {count}")
            lines.append("Divergences by client:")
            for name, count in report.divergences_by_client().items():
                lines.append(f"  {name}: {count}")

            shown = report.divergences if detailed else report.divergences[:10]
            lines.append("")
            lines.append("Details:")
            for div in shown:
                lines.append(f"  - {div.vector_name} ({div.field}, {div.client}):")
                if detailed:
                    lines.append(f"      {div.reference_client}: {div.expected}")
                    lines.append(f"      {div.client}: {div.actual}")
                if div.details:
                    lines.append(f"      {div.details}")
            if len(shown) < len(report.divergences):
                lines.append(f"  ... and {len(report.divergences) - len(shown)} more")

        lines.append("")
        lines.append(f"Overall: {'PASSED' if report.total_failed == 0 else 'FAILED'}")
        lines.append("=" * 60)
        return lines

    def _report_to_dict(self, report: ConformanceReport) -> Dict[str, Any]:
        return {
            "timestamp": report.timestamp,
            "clients": report.clients,
            "reference_client": report.reference_client,
            "totals": {
                "suites": len(report.suite_results),
                "tests": report.total_tests,
                "passed": report.total_passed,
                "failed": report.total_failed,
                "skipped": report.total_skipped,
                "divergences": report.total_divergences,
            },
            "divergences_by_field": report.divergences_by_field(),
            "divergences_by_client": report.divergences_by_client(),
            "execution_time_ms": report.execution_time_ms,
            "suite_results": [
                {
                    "suite_name": s.suite_name,
                    "total_tests": s.total_tests,
                    "passed_tests": s.passed_tests,
                    "failed_tests": s.failed_tests,
                    "skipped_tests": s.skipped_tests,
                    "execution_time_ms": s.execution_time_ms,
                    "pass_rate": s.pass_rate,
                    "failures": [
                        {"vector_name": t.vector_name, "error": t.error}
                        for t in s.failures
                    ],
                }
                for s in report.suite_results
            ],
            # Payloads may hold event lists; keep them structured when JSON-safe.
            "divergences": [
                {
                    "vector_name": d.vector_name,
                    "field": d.field,
                    "client": d.client,
                    "reference_client": d.reference_client,
                    "expected": d.expected if isinstance(d.expected, (list, dict, int, bool)) else str(d.expected),
                    "actual": d.actual if isinstance(d.actual, (list, dict, int, bool)) else str(d.actual),
                    "details": d.details,
                }
                for d in report.divergences
            ],
        }
