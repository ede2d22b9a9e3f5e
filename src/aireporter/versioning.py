"""Package version, from installed metadata or the source checkout's pyproject."""

from __future__ import annotations

import re
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path

DISTRIBUTION = "aireporter"
UNKNOWN_VERSION = "0+unknown"

_PROJECT_TABLE_RE = re.compile(r"(?ms)^\[project\]\s*$(.*?)(?=^\[|\Z)")
_KEY_RE = r'(?m)^{key}\s*=\s*"([^"]+)"\s*$'


def project_version(pyproject: Path) -> str | None:
    """``version`` from the ``[project]`` table when it names this distribution."""
    try:
        text = pyproject.read_text(encoding="utf-8")
    except OSError:
        return None
    table = _PROJECT_TABLE_RE.search(text)
    if not table:
        return None
    name = re.search(_KEY_RE.format(key="name"), table.group(1))
    if not name or name.group(1).strip() != DISTRIBUTION:
        return None
    found = re.search(_KEY_RE.format(key="version"), table.group(1))
    return found.group(1).strip() if found else None


def _checkout_version() -> str | None:
    for parent in Path(__file__).resolve().parents:
        candidate = parent / "pyproject.toml"
        if candidate.is_file():
            found = project_version(candidate)
            if found:
                return found
    return None


def resolve_version() -> str:
    # A source checkout wins over a stale installed copy.
    found = _checkout_version()
    if found:
        return found
    try:
        return package_version(DISTRIBUTION)
    except PackageNotFoundError:
        return UNKNOWN_VERSION


VERSION = resolve_version()
