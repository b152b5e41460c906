"""Summaries of cucumber JUnit XML reports.

Counts scenarios by outcome from the ``<testcase>`` elements, so the
numbers stay right whether or not the runner fills in the suite-level
counter attributes.
"""

from __future__ import annotations

import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class JUnitSummary:
    """Scenario counts of one report."""

    tests: int = 0
    failures: int = 0
    errors: int = 0
    skipped: int = 0
    failed_scenarios: list[str] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return self.tests - self.failures - self.errors - self.skipped

    def to_dict(self) -> dict[str, Any]:
        return {
            "tests": self.tests,
            "passed": self.passed,
            "failures": self.failures,
            "errors": self.errors,
            "skipped": self.skipped,
            "failed_scenarios": list(self.failed_scenarios),
        }


def parse_junit_xml(xml_content: str) -> JUnitSummary:
    """Parse JUnit XML text.

    Raises:
        ET.ParseError: If the content is not well-formed XML.
    """
    root = ET.fromstring(xml_content)
    summary = JUnitSummary()

    for case in root.iter("testcase"):
        summary.tests += 1
        name = case.get("name", "")
        classname = case.get("classname", "")
        label = f"{classname}: {name}" if classname else name

        if case.find("failure") is not None:
            summary.failures += 1
            summary.failed_scenarios.append(label)
        elif case.find("error") is not None:
            summary.errors += 1
            summary.failed_scenarios.append(label)
        elif case.find("skipped") is not None:
            summary.skipped += 1

    return summary


def summarize_junit(path: str | Path) -> JUnitSummary | None:
    """Summarize the report at ``path``.

    Returns:
        The summary, or None if the file is missing or malformed.
    """
    try:
        content = Path(path).read_text()
    except FileNotFoundError:
        return None
    except OSError as e:
        print(f"junit: cannot read {path}: {e}", file=sys.stderr)
        return None
    try:
        return parse_junit_xml(content)
    except ET.ParseError as e:
        print(f"junit: malformed report {path}: {e}", file=sys.stderr)
        return None
