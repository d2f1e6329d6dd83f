"""Node.js runtime version check."""

import re
from typing import Optional

_VERSION_RE = re.compile(r"v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def parse_version(version: str) -> Optional[tuple[int, int, int]]:
    match = _VERSION_RE.search((version or "").strip())
    if not match:
        return None
    return tuple(int(part or 0) for part in match.groups())


def runtime_satisfies(version: Optional[str], minimum: str) -> bool:
    """True when ``version`` (e.g. ``v20.11.1``) is at least ``minimum``.

    A missing or unparseable version never satisfies the requirement.
    """
    current = parse_version(version) if version else None
    required = parse_version(minimum)
    if current is None or required is None:
        return False
    return current >= required
