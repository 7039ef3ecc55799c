"""
Summaries over emitted rep records: totals, averages and coaching tips.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Optional, Sequence

from .scoring import RepetitionRecord

logger = logging.getLogger(__name__)

# Reps needed before tempo consistency is judged.
MIN_REPS_FOR_TEMPO = 3
# Coefficient of variation in rep duration above which tempo is inconsistent.
TEMPO_CV_MAX = 0.25


def _mean(vals: Sequence[float]) -> Optional[float]:
    return sum(vals) / len(vals) if vals else None


def _cv(vals: Sequence[float]) -> Optional[float]:
    if len(vals) < 2:
        return None
    m = _mean(vals)
    if not m or abs(m) < 1e-6:
        return None
    var = sum((v - m) ** 2 for v in vals) / (len(vals) - 1)
    return (var ** 0.5) / abs(m)


def summarize_reps(reps: Sequence[RepetitionRecord]) -> dict[str, Any]:
    """Aggregate a list of records; safe on an empty list."""
    total = len(reps)
    valid = sum(1 for r in reps if r.is_valid)
    scores = [r.form_score for r in reps]
    roms = [r.range_of_motion for r in reps]
    durations = [r.duration for r in reps]
    issue_counts = Counter(msg for r in reps for msg in r.issues)

    avg_score = _mean(scores)
    avg_rom = _mean(roms)
    tempo_cv = _cv(durations)

    tips: list[str] = []
    if total == 0:
        tips.append("No reps detected. Make sure your whole body is in frame.")
    else:
        if avg_rom is not None and avg_rom < 80:
            tips.append("Focus on achieving full range of motion for better results.")
        if avg_score is not None and avg_score < 70:
            tips.append("Slow down and focus on form quality over quantity.")
        if valid / total < 0.8:
            tips.append("Several reps did not meet the standard; reduce pace and check technique.")
        if total >= MIN_REPS_FOR_TEMPO and tempo_cv is not None and tempo_cv > TEMPO_CV_MAX:
            tips.append("Aim for a more consistent tempo.")
        for msg, _ in issue_counts.most_common(2):
            tips.append(f"Recurring issue: {msg}")
        if not tips:
            tips.append("Great form! Keep up the good work.")

    summary = {
        "total_reps": total,
        "valid_reps": valid,
        "average_form_score": round(avg_score, 1) if avg_score is not None else None,
        "average_rom": round(avg_rom, 1) if avg_rom is not None else None,
        "average_duration": round(_mean(durations), 2) if durations else None,
        "common_issues": issue_counts.most_common(),
        "tips": tips,
    }
    logger.info(
        "summary: reps=%s valid=%s avg_score=%s avg_rom=%s",
        total, valid, summary["average_form_score"], summary["average_rom"],
    )
    return summary
