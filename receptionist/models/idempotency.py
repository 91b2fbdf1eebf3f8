"""
Deterministic identifiers for telemetry events.

The collector deduplicates on these identifiers, so identical inputs must always
produce identical output. That makes at-least-once delivery safe to retry.
"""

from typing import Dict


class TurnCounter:
    """Per-call turn counter starting at 0.

    Counters live for the life of the process and are never reset.
    """

    def __init__(self):
        self._counters: Dict[str, int] = {}

    def next(self, call_id: str) -> int:
        """Return the current turn index for ``call_id`` and advance it."""
        current = self._counters.get(call_id, 0)
        self._counters[call_id] = current + 1
        return current


def event_id(call_id: str, role: str, turn_index: int) -> str:
    """Identifier of a transcript event, e.g. ``CA123:caller:0``."""
    return f"{call_id}:{role}:{turn_index}"


def tool_event_id(call_id: str, tool_name: str, ordinal: int) -> str:
    """Identifier of the ``ordinal``-th tool call within a turn."""
    return f"{call_id}:tool:{tool_name}:{ordinal}"
