"""
Session counter: runs the rep engine for one selected exercise.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .exercises import ExerciseType, ThresholdProfile, get_profile
from .form import FormIssue
from .perspective import Perspective
from .pose import PoseFrame, smooth_keypoints_ema
from .reps import EngineState, Phase, advance, new_state
from .scoring import RepetitionRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CounterSnapshot:
    phase: Phase
    rep_count: int
    perspective: Perspective
    calibrated: bool
    issues: tuple[FormIssue, ...]
    baseline_angle: Optional[float] = None
    baseline_position: Optional[float] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "rep_count": self.rep_count,
            "perspective": self.perspective.value,
            "calibrated": self.calibrated,
            "issues": [
                {
                    "type": i.type,
                    "severity": i.severity.value,
                    "message": i.message,
                    "recommendation": i.recommendation,
                }
                for i in self.issues
            ],
            "baseline_angle": self.baseline_angle,
            "baseline_position": self.baseline_position,
        }


class SessionCounter:
    """
    Rep counter for one active exercise.
    Not thread-safe: callers must deliver frames one at a time in timestamp order.
    """

    def __init__(
        self,
        exercise: ExerciseType | str = ExerciseType.PUSH_UP,
        smoothing_alpha: Optional[float] = None,
    ):
        self._profile: ThresholdProfile = get_profile(exercise)
        self.smoothing_alpha = smoothing_alpha
        self._state: EngineState = new_state(self._profile)
        self._last_frame: Optional[PoseFrame] = None

    @property
    def exercise(self) -> ExerciseType:
        return self._profile.exercise

    @property
    def profile(self) -> ThresholdProfile:
        return self._profile

    @property
    def rep_count(self) -> int:
        return self._state.rep_count

    @property
    def phase(self) -> Phase:
        return self._state.phase

    def reset(self) -> None:
        """Discard all state and start calibrating again."""
        self._state = new_state(self._profile)
        self._last_frame = None
        logger.info("session: reset (%s)", self._profile.exercise.value)

    def set_exercise(self, exercise: ExerciseType | str) -> None:
        """Swap profile and reset. Unknown names raise before any state changes."""
        profile = get_profile(exercise)
        self._profile = profile
        self.reset()

    def push(self, frame: PoseFrame) -> Optional[RepetitionRecord]:
        """Process one frame; returns a record when a rep closes on this frame."""
        if self.smoothing_alpha is not None:
            frame = smooth_keypoints_ema(frame, self._last_frame, self.smoothing_alpha)
            self._last_frame = frame
        self._state, record = advance(self._state, frame)
        return record

    def snapshot(self) -> CounterSnapshot:
        s = self._state
        return CounterSnapshot(
            phase=s.phase,
            rep_count=s.rep_count,
            perspective=s.perspective,
            calibrated=s.calibrated,
            issues=tuple(s.issues),
            baseline_angle=s.baseline_angle,
            baseline_position=s.baseline_position,
        )


def count_reps(
    frames: Iterable[PoseFrame],
    exercise: ExerciseType | str,
    smoothing_alpha: Optional[float] = None,
) -> list[RepetitionRecord]:
    """Offline: replay a frame sequence and return every emitted record."""
    counter = SessionCounter(exercise, smoothing_alpha=smoothing_alpha)
    reps: list[RepetitionRecord] = []
    for frame in frames:
        record = counter.push(frame)
        if record is not None:
            reps.append(record)
    logger.info("session: replay done, %s reps (%s)", len(reps), counter.exercise.value)
    return reps
