"""HackerOne-style report sections delimited by ``<<<FIELD>>>`` markers."""

from __future__ import annotations

import re
from dataclasses import astuple, dataclass, fields

SECTION_FIELDS = ("asset", "weakness", "severity", "title", "description", "impact")


def section_delimiters(name: str) -> tuple[str, str]:
    token = name.upper()
    return f"<<<{token}>>>", f"<<<END_{token}>>>"


def _section_pattern(name: str) -> re.Pattern[str]:
    start, end = section_delimiters(name)
    return re.compile(re.escape(start) + r"([\s\S]*?)" + re.escape(end))


_SECTION_RES = {name: _section_pattern(name) for name in SECTION_FIELDS}


@dataclass
class HackerOneReport:
    asset: str = ""
    weakness: str = ""
    severity: str = ""
    title: str = ""
    description: str = ""
    impact: str = ""

    def is_empty(self) -> bool:
        return not any(astuple(self))


def parse_hackerone_report(markdown: str) -> HackerOneReport:
    """Extract every section on its own; a missing pair leaves that field blank."""
    values: dict[str, str] = {}
    for name, pattern in _SECTION_RES.items():
        match = pattern.search(markdown or "")
        values[name] = match.group(1).strip() if match else ""
    return HackerOneReport(**values)


def serialize_hackerone_report(report: HackerOneReport) -> str:
    blocks: list[str] = []
    for item in fields(report):
        start, end = section_delimiters(item.name)
        blocks.append(f"{start}\n{getattr(report, item.name)}\n{end}")
    return "\n\n".join(blocks) + "\n"


def hackerone_export_markdown(report: HackerOneReport) -> str:
    """Plain Markdown rendition of the sections, without delimiters."""
    return (
        f"# {report.title}\n"
        "\n"
        f"**Asset:** {report.asset}  \n"
        f"**Weakness:** {report.weakness}  \n"
        f"**Severity:** {report.severity}\n"
        "\n"
        "---\n"
        "\n"
        f"{report.description}\n"
        "\n"
        "---\n"
        "\n"
        "## Impact\n"
        "\n"
        f"{report.impact}"
    )
