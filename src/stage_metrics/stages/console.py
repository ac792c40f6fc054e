"""Console-log scanner for per-stage ``KEY=VALUE`` variable declarations."""

from __future__ import annotations

import re
from collections.abc import Iterable

STAGE_MARKER = "[Pipeline] stage"
ENTERING_STAGE = "Entering stage: "
BLOCK_OPEN = "[Pipeline] {"

_VARIABLE_LINE = re.compile(r"^[A-Z_]+=.*$")
_STAGE_NAME_JUNK = re.compile(r"[)\"]")


def scan_stage_variables(lines: Iterable[str]) -> dict[str, dict[str, str]]:
    """Map stage name -> variables echoed to the console while it was open.

    A stage section opens on ``[Pipeline] stage (Entering stage: X)`` and
    closes on the next ``[Pipeline] {`` line.
    """
    variables: dict[str, dict[str, str]] = {}
    current: str | None = None

    for raw in lines:
        line = raw.rstrip("\r\n")
        if BLOCK_OPEN in line and current is not None:
            current = None
        elif STAGE_MARKER in line and ENTERING_STAGE in line:
            idx = line.index(ENTERING_STAGE)
            current = _STAGE_NAME_JUNK.sub("", line[idx + len(ENTERING_STAGE) :].strip())
            variables.setdefault(current, {})

        if current is not None and _VARIABLE_LINE.match(line):
            key, value = line.split("=", 1)
            variables[current][key] = value

    return variables
