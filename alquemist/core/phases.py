"""Phase bookkeeping for production templates."""

from typing import Iterable, List, Sequence


def total_duration_days(phases: Iterable) -> int:
    return sum(p.estimated_duration_days or 0 for p in phases)


def renumber(phases: Iterable) -> List:
    """Close gaps in ``phase_order`` (1..n), keeping the current relative order."""
    ordered = sorted(phases, key=lambda p: p.phase_order)
    for n, phase in enumerate(ordered, start=1):
        if phase.phase_order != n:
            phase.phase_order = n
    return ordered


def chain(phases: Sequence) -> None:
    """Order ``phases`` as given: 1..n, each pointing at the one before it."""
    previous = None
    for n, phase in enumerate(phases, start=1):
        phase.phase_order = n
        phase.previous_phase_id = previous.id if previous is not None else None
        previous = phase
