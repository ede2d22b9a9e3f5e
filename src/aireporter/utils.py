from __future__ import annotations

import json
import os
import re
import secrets
import time
from pathlib import Path
from typing import Any

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_ENV_REFERENCE_RE = re.compile(r"^(?:\$\{\s*(\w+)\s*\}|\$(\w+)|%(\w+)%)$")


def now_ms() -> int:
    return int(time.time() * 1000)


def to_base36(value: int) -> str:
    if value <= 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_id() -> str:
    """Millisecond clock in base 36 followed by a random suffix."""
    return to_base36(now_ms()) + random_base36(11)


def json_text(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


def write_text_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_text(text, encoding="utf-8")
    os.replace(tmp_path, path)


def expand_env_reference(value: str | None) -> str | None:
    """Expand a whole-value `$NAME`, `${NAME}` or `%NAME%` reference; unset names are kept."""
    if not value:
        return value
    match = _ENV_REFERENCE_RE.match(value.strip())
    if not match:
        return value
    name = next(group for group in match.groups() if group)
    return os.environ.get(name) or value


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + suffix
