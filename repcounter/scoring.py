"""
Rep scoring: range of motion, form score and validity for a completed rep.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence

from .exercises import ExerciseType, ThresholdProfile
from .form import FormIssue, Severity

# Score lost per ROM percentage point below the exercise minimum.
ROM_PENALTY_PER_PCT = 0.5
# Score lost per accumulated issue, by severity.
ISSUE_PENALTY = {
    Severity.MAJOR: 10.0,
    Severity.MODERATE: 5.0,
    Severity.MINOR: 2.0,
}
# ROM may fall this fraction short of the minimum and still be valid.
ROM_TOLERANCE = 0.9
# Reps scoring below this are invalid.
VALIDITY_FLOOR = 50.0
# Completion-frame checks: push-up alignment, squat knee symmetry, deadlift trunk lean.
ALIGNMENT_PENALTY_BELOW = 80.0
ALIGNMENT_PENALTY_PER_PT = 0.3
KNEE_ASYMMETRY_MAX = 15.0
KNEE_ASYMMETRY_PER_DEG = 0.2
TRUNK_LEAN_MAX = 20.0
TRUNK_LEAN_PER_DEG = 0.5


@dataclass(frozen=True)
class RepetitionRecord:
    rep_number: int
    timestamp: float
    duration: float  # seconds
    is_valid: bool
    form_score: float
    range_of_motion: float
    joint_angles: Mapping[str, float] = field(default_factory=dict)
    issues: tuple[str, ...] = ()

    def __post_init__(self):
        # Read-only view over a private copy so the record stays immutable.
        object.__setattr__(self, "joint_angles", MappingProxyType(dict(self.joint_angles)))

    def as_dict(self) -> dict[str, Any]:
        return {
            "rep_number": self.rep_number,
            "timestamp": self.timestamp,
            "duration": self.duration,
            "is_valid": self.is_valid,
            "form_score": self.form_score,
            "range_of_motion": self.range_of_motion,
            "joint_angles": dict(self.joint_angles),
            "issues": list(self.issues),
        }


def range_of_motion(observed_delta: float, ideal_delta: float) -> float:
    if ideal_delta <= 0:
        return 100.0
    return max(0.0, min(100.0, 100.0 * abs(observed_delta) / ideal_delta))


def completion_penalty(
    exercise: ExerciseType,
    joint_angles: dict[str, float],
    alignment: Optional[float] = None,
) -> float:
    """Exercise-specific deduction from the pose at the moment the rep closes."""
    if exercise == ExerciseType.PUSH_UP:
        if alignment is not None and alignment < ALIGNMENT_PENALTY_BELOW:
            return (ALIGNMENT_PENALTY_BELOW - alignment) * ALIGNMENT_PENALTY_PER_PT
    elif exercise == ExerciseType.SQUAT:
        left = joint_angles.get("left_knee")
        right = joint_angles.get("right_knee")
        if left is not None and right is not None:
            asym = abs(left - right)
            if asym > KNEE_ASYMMETRY_MAX:
                return asym * KNEE_ASYMMETRY_PER_DEG
    elif exercise == ExerciseType.DEADLIFT:
        spine = joint_angles.get("spine")
        if spine is not None:
            # spine is measured against an upward reference: 180 = upright.
            lean = 180.0 - spine
            if lean > TRUNK_LEAN_MAX:
                return (lean - TRUNK_LEAN_MAX) * TRUNK_LEAN_PER_DEG
    return 0.0


def form_score(
    rom: float,
    min_rom: float,
    issues: Sequence[FormIssue],
    extra_penalty: float = 0.0,
) -> float:
    score = 100.0
    if rom < min_rom:
        score -= (min_rom - rom) * ROM_PENALTY_PER_PCT
    for issue in issues:
        score -= ISSUE_PENALTY[issue.severity]
    score -= max(0.0, extra_penalty)
    return max(0.0, min(100.0, score))


def is_valid(
    rom: float,
    score: float,
    duration: float,
    profile: ThresholdProfile,
    issues: Sequence[FormIssue],
) -> bool:
    return (
        rom >= profile.min_rom * ROM_TOLERANCE
        and score >= VALIDITY_FLOOR
        and duration >= profile.min_duration
        and not any(i.severity == Severity.MAJOR for i in issues)
    )


def build_record(
    profile: ThresholdProfile,
    rep_number: int,
    timestamp: float,
    duration: float,
    observed_delta: float,
    ideal_delta: float,
    issues: Sequence[FormIssue],
    joint_angles: dict[str, float],
    alignment: Optional[float] = None,
) -> RepetitionRecord:
    rom = range_of_motion(observed_delta, ideal_delta)
    penalty = completion_penalty(profile.exercise, joint_angles, alignment)
    score = form_score(rom, profile.min_rom, issues, penalty)
    return RepetitionRecord(
        rep_number=rep_number,
        timestamp=timestamp,
        duration=duration,
        is_valid=is_valid(rom, score, duration, profile, issues),
        form_score=round(score, 1),
        range_of_motion=round(rom, 1),
        joint_angles=joint_angles,
        issues=tuple(i.message for i in issues),
    )
