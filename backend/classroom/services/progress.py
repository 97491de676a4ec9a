from __future__ import annotations

from decimal import Decimal

from classroom.services.grading import round_half_up


def compute_progress(total_units: int, completed_units: int) -> int | None:
    """Completion percentage for one learner in one course.

    Returns None when the course has no lessons: there is nothing to measure
    against, and callers must keep whatever progress they already stored
    instead of writing 0.
    """
    total = int(total_units or 0)
    if total <= 0:
        return None

    done = min(max(int(completed_units or 0), 0), total)
    return round_half_up(Decimal(done) * 100 / Decimal(total))
