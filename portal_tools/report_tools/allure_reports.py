"""
================================================================================
Allure Report Utilities
================================================================================

Attachment helpers used by page objects and the result summary printed by
run_tests.py after a run.

================================================================================
"""

import json
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import allure
from loguru import logger


# ================================================================================
# Attachment Helpers
# ================================================================================

def attach_json(data: Any, name: str = "Data"):
    """
    Attach JSON data to Allure report.

    Args:
        data: Data to attach (will be JSON serialized)
        name: Attachment name
    """
    allure.attach(
        json.dumps(data, indent=2, default=str),
        name=name,
        attachment_type=allure.attachment_type.JSON,
    )


def attach_text(text: str, name: str = "Text"):
    allure.attach(text, name=name, attachment_type=allure.attachment_type.TEXT)


def attach_email_details(
    headers: Dict[str, str],
    code: Optional[str],
    name: str = "Verification Email",
):
    """
    Attach the headers of the email a code was read from.

    The body is left out; only sender, recipient, subject, date and
    whether a code was found end up in the report.
    """
    attach_json(
        {
            "from": headers.get("from", "N/A"),
            "to": headers.get("to", "N/A"),
            "subject": headers.get("subject", "N/A"),
            "date": headers.get("date", "N/A"),
            "code_found": code is not None,
        },
        name=name,
    )


# ================================================================================
# Report Processing
# ================================================================================

@dataclass
class RunSummary:
    """Summary of test execution results."""
    total: int = 0
    passed: int = 0
    failed: int = 0
    broken: int = 0
    skipped: int = 0
    unknown: int = 0
    duration_ms: int = 0
    failed_tests: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def pass_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.passed / self.total) * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "broken": self.broken,
            "skipped": self.skipped,
            "unknown": self.unknown,
            "pass_rate": f"{self.pass_rate:.2f}%",
            "duration_ms": self.duration_ms,
            "failed_tests": list(self.failed_tests),
            "timestamp": self.timestamp,
        }


class AllureReportProcessor:
    """
    Reads ``*-result.json`` files and turns them into a summary or an HTML report.

    Retried tests produce one result file per attempt; only the latest
    attempt per ``historyId`` is counted.
    """

    def __init__(self, results_dir: Path, report_dir: Optional[Path] = None):
        self.results_dir = Path(results_dir)
        self.report_dir = Path(report_dir or self.results_dir.parent / "allure-report")

    def parse_results(self) -> List[Dict[str, Any]]:
        latest: Dict[str, Dict[str, Any]] = {}

        for result_file in sorted(self.results_dir.glob("*-result.json")):
            try:
                with open(result_file, encoding="utf-8") as f:
                    result = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to parse {result_file}: {e}")
                continue

            key = result.get("historyId") or result.get("uuid") or result_file.name
            previous = latest.get(key)
            if previous is None or result.get("stop", 0) >= previous.get("stop", 0):
                latest[key] = result

        return list(latest.values())

    def generate_summary(self) -> RunSummary:
        summary = RunSummary()
        for result in self.parse_results():
            summary.total += 1
            status = result.get("status", "unknown")
            if status == "passed":
                summary.passed += 1
            elif status in ("failed", "broken"):
                setattr(summary, status, getattr(summary, status) + 1)
                summary.failed_tests.append(result.get("fullName") or result.get("name", "?"))
            elif status == "skipped":
                summary.skipped += 1
            else:
                summary.unknown += 1

            summary.duration_ms += max(0, result.get("stop", 0) - result.get("start", 0))

        return summary

    def copy_history(self):
        """Carry trend history from the previous report into the new results."""
        history_source = self.report_dir / "history"
        history_dest = self.results_dir / "history"

        if history_source.exists():
            if history_dest.exists():
                shutil.rmtree(history_dest)
            shutil.copytree(history_source, history_dest)
            logger.info("Copied history from previous report")

    def generate_report(self) -> bool:
        """
        Generate the Allure HTML report with the ``allure`` CLI.

        Returns:
            True if successful
        """
        self.copy_history()
        cmd = [
            "allure", "generate",
            str(self.results_dir),
            "-o", str(self.report_dir),
            "--clean",
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            logger.warning("Allure command not found. Install allure-commandline.")
            return False

        if result.returncode != 0:
            logger.error(f"Report generation failed: {result.stderr}")
            return False

        logger.info(f"Report generated at {self.report_dir}")
        return True

    def print_summary(self):
        summary = self.generate_summary()

        print("\n" + "=" * 60)
        print("TEST EXECUTION SUMMARY")
        print("=" * 60)
        print(f"Total Tests:    {summary.total}")
        print(f"Passed:         {summary.passed} ✅")
        print(f"Failed:         {summary.failed} ❌")
        print(f"Broken:         {summary.broken} ⚠️")
        print(f"Skipped:        {summary.skipped} ⏭️")
        print(f"Pass Rate:      {summary.pass_rate:.2f}%")
        print(f"Duration:       {summary.duration_ms / 1000:.2f}s")
        for name in summary.failed_tests:
            print(f"  - {name}")
        print("=" * 60 + "\n")
        return summary
