"""
Rep detection state machine (single pass, bounded history).
Calibrates a resting baseline, then cycles READY -> DOWN/UP -> READY; each
closed cycle that passes the noise gates yields one RepetitionRecord.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

import numpy as np

from .buffers import RingBuffer
from .exercises import ExerciseClass, ThresholdProfile
from .form import FormIssue, add_issue, detect_form_issues
from .geometry import angle_at, body_alignment, joint_angles, torso_span
from .perspective import Perspective, PerspectiveVotes, classify_perspective
from .pose import PoseFrame
from .scoring import RepetitionRecord, build_record

logger = logging.getLogger(__name__)

# Samples kept for the angle and position signals (~2 s at 30 fps).
HISTORY_SIZE = 60
# Frames with a usable signal required before calibration may finish.
CALIBRATION_FRAMES = 15
# Trailing samples that must be stable to accept the baseline.
STABLE_FRAMES = 5
# Max deviation from the window mean for a stable baseline.
ANGLE_STABILITY_DEG = 10.0
POSITION_STABILITY_PX = 15.0
# Minimum time (s) between phase transitions.
DEBOUNCE_SEC = 0.15
# Angle thresholds count as crossed within this many degrees of the target.
ANGLE_APPROACH_DEG = 10.0
# Vertical range (px) needed before normalized position is trusted.
MIN_POSITION_RANGE_PX = 30.0


class Phase(str, Enum):
    CALIBRATING = "calibrating"
    READY = "ready"
    DOWN = "down"
    UP = "up"


class TrackingMode(str, Enum):
    ANGLE = "angle"
    POSITION = "position"


def _active_phase(profile: ThresholdProfile) -> Phase:
    if profile.exercise_class == ExerciseClass.PULL:
        return Phase.UP
    return Phase.DOWN


@dataclass
class EngineState:
    """
    All mutable detection state for one exercise session.
    Per-rep fields (extrema, issues, start time) clear on every closed cycle;
    baseline and rep_count persist until reset.
    """

    profile: ThresholdProfile
    phase: Phase = Phase.CALIBRATING
    rep_count: int = 0
    calibration_frames: int = 0
    baseline_angle: Optional[float] = None
    baseline_position: Optional[float] = None
    # Torso span (px) at calibration; scales position-mode range of motion.
    baseline_scale: Optional[float] = None
    angle_history: RingBuffer = field(default_factory=lambda: RingBuffer(HISTORY_SIZE))
    position_history: RingBuffer = field(default_factory=lambda: RingBuffer(HISTORY_SIZE))
    votes: PerspectiveVotes = field(default_factory=PerspectiveVotes)
    min_angle: Optional[float] = None
    max_angle: Optional[float] = None
    min_position: Optional[float] = None
    max_position: Optional[float] = None
    rest_exit_time: Optional[float] = None
    rep_start_time: Optional[float] = None
    last_transition_time: Optional[float] = None
    issues: list[FormIssue] = field(default_factory=list)
    previous_frame: Optional[PoseFrame] = None

    @property
    def calibrated(self) -> bool:
        return self.phase != Phase.CALIBRATING

    @property
    def perspective(self) -> Perspective:
        return self.votes.current

    @property
    def active(self) -> bool:
        return self.phase in (Phase.DOWN, Phase.UP)

    def copy(self) -> "EngineState":
        return replace(
            self,
            angle_history=self.angle_history.copy(),
            position_history=self.position_history.copy(),
            votes=self.votes.copy(),
            issues=list(self.issues),
        )


def primary_angle(frame: PoseFrame, profile: ThresholdProfile) -> Optional[float]:
    """Angle of the first chain whose three keypoints are all present."""
    for a, vertex, b in profile.angle_chains:
        pa, pv, pb = frame.get(a), frame.get(vertex), frame.get(b)
        if pa is not None and pv is not None and pb is not None:
            return angle_at(pa, pv, pb)
    return None


def vertical_position(frame: PoseFrame, profile: ThresholdProfile) -> Optional[float]:
    """Mean y of the profile's position keypoints that are present."""
    ys = [kp.y for kp in (frame.get(n) for n in profile.position_keypoints) if kp is not None]
    if not ys:
        return None
    return float(np.mean(ys))


def _normalized_position(state: EngineState, position: Optional[float]) -> Optional[float]:
    """Position in [0, 1] (0 = top of range) over the rep extrema widened by history."""
    if position is None or state.min_position is None or state.max_position is None:
        return None
    lo, hi = state.min_position, state.max_position
    window = state.position_history.values()
    if len(window):
        lo = min(lo, float(window.min()))
        hi = max(hi, float(window.max()))
    if hi - lo < MIN_POSITION_RANGE_PX:
        return None
    return (position - lo) / (hi - lo)


def _select_mode(
    perspective: Perspective,
    angle: Optional[float],
    norm_position: Optional[float],
) -> Optional[TrackingMode]:
    if perspective == Perspective.FRONT:
        order = (TrackingMode.POSITION, TrackingMode.ANGLE)
    else:
        order = (TrackingMode.ANGLE, TrackingMode.POSITION)
    for mode in order:
        if mode == TrackingMode.ANGLE and angle is not None:
            return mode
        if mode == TrackingMode.POSITION and norm_position is not None:
            return mode
    return None


def _at_rest(profile: ThresholdProfile, mode: TrackingMode, value: float) -> bool:
    if mode == TrackingMode.ANGLE:
        return value > profile.extended_angle - ANGLE_APPROACH_DEG
    if profile.position_rises:
        return value > profile.down_ratio
    return value < profile.up_ratio


def _engaged(profile: ThresholdProfile, mode: TrackingMode, value: float) -> bool:
    if mode == TrackingMode.ANGLE:
        return value < profile.contracted_angle + ANGLE_APPROACH_DEG
    if profile.position_rises:
        return value < profile.up_ratio
    return value > profile.down_ratio


def _debounced(state: EngineState, timestamp: float) -> bool:
    return state.last_transition_time is None or timestamp - state.last_transition_time > DEBOUNCE_SEC


def _near_baseline(state: EngineState, position: Optional[float]) -> bool:
    if position is None or state.baseline_position is None:
        return False
    return abs(position - state.baseline_position) < POSITION_STABILITY_PX


def _stable(window: np.ndarray, tolerance: float) -> bool:
    if len(window) < STABLE_FRAMES:
        return False
    return float(np.max(np.abs(window - window.mean()))) < tolerance


def _calibrate(state: EngineState, frame: PoseFrame, angle: Optional[float], position: Optional[float]) -> None:
    """Accept a baseline only from a steady pose at the rest end of the movement."""
    state.calibration_frames += 1
    if state.calibration_frames < CALIBRATION_FRAMES:
        return
    angle_window = state.angle_history.last(STABLE_FRAMES)
    position_window = state.position_history.last(STABLE_FRAMES)
    angle_ok = angle is not None and _stable(angle_window, ANGLE_STABILITY_DEG)
    position_ok = position is not None and _stable(position_window, POSITION_STABILITY_PX)
    if not (angle_ok or position_ok):
        return
    if angle_ok and not _at_rest(state.profile, TrackingMode.ANGLE, float(angle_window.mean())):
        logger.debug("rep engine: steady at %.1f deg but not at rest, still calibrating", float(angle_window.mean()))
        return
    state.baseline_angle = float(angle_window.mean()) if angle_ok else None
    state.baseline_position = float(position_window.mean()) if position_ok else None
    state.baseline_scale = torso_span(frame)
    state.phase = Phase.READY
    state.last_transition_time = frame.timestamp
    _reset_rep(state, angle, position)
    logger.info(
        "rep engine: calibrated %s after %s frames (baseline angle=%s position=%s)",
        state.profile.exercise.value,
        state.calibration_frames,
        state.baseline_angle,
        state.baseline_position,
    )


def _track_extrema(state: EngineState, angle: Optional[float], position: Optional[float]) -> None:
    if angle is not None:
        state.min_angle = angle if state.min_angle is None else min(state.min_angle, angle)
        state.max_angle = angle if state.max_angle is None else max(state.max_angle, angle)
    if position is not None:
        state.min_position = position if state.min_position is None else min(state.min_position, position)
        state.max_position = position if state.max_position is None else max(state.max_position, position)


def _reset_rep(state: EngineState, angle: Optional[float], position: Optional[float]) -> None:
    state.min_angle = state.max_angle = angle
    state.min_position = state.max_position = position
    state.issues = []
    state.rest_exit_time = None
    state.rep_start_time = None


def _close_rep(
    state: EngineState,
    frame: PoseFrame,
    mode: TrackingMode,
    angle: Optional[float],
    position: Optional[float],
) -> Optional[RepetitionRecord]:
    profile = state.profile
    ts = frame.timestamp
    start = state.rep_start_time if state.rep_start_time is not None else ts
    duration = ts - start
    state.phase = Phase.READY
    state.last_transition_time = ts

    if mode == TrackingMode.ANGLE:
        observed = (state.max_angle or 0.0) - (state.min_angle or 0.0)
        ideal = profile.ideal_angle_delta
    else:
        # Excursion in torso lengths; the normalized [0, 1] position is relative to the rep itself.
        scale = state.baseline_scale or torso_span(frame)
        excursion = (state.max_position or 0.0) - (state.min_position or 0.0)
        observed = excursion / scale if scale else 0.0
        ideal = profile.ideal_excursion

    if duration < profile.min_duration:
        logger.debug("rep engine: discarded cycle, duration %.3fs < %.3fs", duration, profile.min_duration)
        _reset_rep(state, angle, position)
        return None
    if mode == TrackingMode.ANGLE and observed < profile.min_angle_change:
        logger.debug("rep engine: discarded cycle, angle change %.1f < %.1f", observed, profile.min_angle_change)
        _reset_rep(state, angle, position)
        return None

    state.rep_count += 1
    record = build_record(
        profile,
        rep_number=state.rep_count,
        timestamp=ts,
        duration=duration,
        observed_delta=observed,
        ideal_delta=ideal,
        issues=state.issues,
        joint_angles=joint_angles(frame),
        alignment=body_alignment(frame),
    )
    logger.info(
        "rep engine: rep %s (%s mode, dur=%.2fs rom=%.0f%% score=%.0f valid=%s)",
        record.rep_number, mode.value, duration, record.range_of_motion, record.form_score, record.is_valid,
    )
    _reset_rep(state, angle, position)
    return record


def new_state(profile: ThresholdProfile) -> EngineState:
    return EngineState(profile=profile)


def advance(state: EngineState, frame: PoseFrame) -> tuple[EngineState, Optional[RepetitionRecord]]:
    """
    Process one frame. Returns (next_state, record or None); `state` is left untouched.
    Frames without a usable signal only update the perspective vote.
    """
    s = state.copy()
    profile = s.profile
    perspective = s.votes.push(classify_perspective(frame))
    angle = primary_angle(frame, profile)
    position = vertical_position(frame, profile)
    if angle is not None:
        s.angle_history.append(angle)
    if position is not None:
        s.position_history.append(position)

    if angle is None and position is None:
        s.previous_frame = frame
        return s, None

    if s.phase == Phase.CALIBRATING:
        _calibrate(s, frame, angle, position)
        s.previous_frame = frame
        return s, None

    _track_extrema(s, angle, position)
    norm = _normalized_position(s, position)
    mode = _select_mode(perspective, angle, norm)
    value = angle if mode == TrackingMode.ANGLE else norm
    ts = frame.timestamp
    record: Optional[RepetitionRecord] = None

    if s.phase == Phase.READY:
        if mode is None:
            # No usable range yet; holding the calibrated position still counts as rest.
            if _near_baseline(s, position):
                s.rest_exit_time = ts
        elif value is not None:
            if _at_rest(profile, mode, value):
                s.rest_exit_time = ts
            elif _engaged(profile, mode, value) and s.rest_exit_time is not None and _debounced(s, ts):
                # Onset only counts after a rest frame: the signal has to cross, not just sit low.
                s.phase = _active_phase(profile)
                s.rep_start_time = s.rest_exit_time
                s.last_transition_time = ts
                logger.debug("rep engine: %s (%s mode, value=%.2f)", s.phase.value, mode.value, value)
    else:
        for issue in detect_form_issues(profile.exercise, frame, perspective, s.previous_frame):
            add_issue(s.issues, issue)
        if mode is not None and value is not None and _at_rest(profile, mode, value) and _debounced(s, ts):
            record = _close_rep(s, frame, mode, angle, position)
            s.rest_exit_time = ts

    s.previous_frame = frame
    return s, record
