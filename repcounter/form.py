"""
Per-frame technique checks run while a rep is in progress.
Each exercise has a small set of checks; issues are kept once per type per rep.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .exercises import ExerciseType
from .geometry import angle_at, body_alignment
from .perspective import Perspective
from .pose import Keypoint, KeypointName as K, PoseFrame

logger = logging.getLogger(__name__)

# Alignment score below which the plank line is flagged; below the major cutoff it is major.
ALIGNMENT_MIN = 85.0
ALIGNMENT_MAJOR = 75.0
# Hip this far (px) below the shoulder-ankle line counts as sagging.
HIP_SAG_TOLERANCE = 10.0
# Elbow separation vs shoulder separation above which elbows flare.
ELBOW_FLARE_RATIO = 1.5
# Knee separation below this fraction of ankle separation is knee cave.
KNEE_CAVE_FRAC = 0.8
# Shoulder-hip horizontal offset (px) that counts as excessive forward lean.
FORWARD_LEAN_PX = 100.0
# Band (deg from horizontal) the shoulder->hip line must stay in for a neutral spine.
SPINE_BAND = (60.0, 120.0)
# Hip angle (shoulder-hip-knee, deg) from which a deadlift counts as near lockout.
LOCKOUT_HIP_ANGLE = 150.0
# Frame-to-frame hip horizontal movement (px) that counts as swing.
SWING_PX = 20.0


class Severity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


@dataclass(frozen=True)
class FormIssue:
    type: str
    severity: Severity
    message: str
    recommendation: str


def add_issue(issues: list[FormIssue], issue: FormIssue) -> bool:
    """Append unless an issue of the same type is already recorded. Returns True if added."""
    if any(i.type == issue.type for i in issues):
        return False
    issues.append(issue)
    logger.debug("form issue: %s (%s)", issue.type, issue.severity.value)
    return True


def _hip_sagging(frame: PoseFrame) -> bool:
    """True if the hip sits below the shoulder-ankle line (image y grows downward)."""
    shoulder = frame.first_available(K.LEFT_SHOULDER, K.RIGHT_SHOULDER)
    hip = frame.first_available(K.LEFT_HIP, K.RIGHT_HIP)
    ankle = frame.first_available(K.LEFT_ANKLE, K.RIGHT_ANKLE)
    if shoulder is None or hip is None or ankle is None:
        return False
    dx = ankle.x - shoulder.x
    t = (hip.x - shoulder.x) / (dx if dx != 0 else 1.0)
    expected_y = shoulder.y + t * (ankle.y - shoulder.y)
    return hip.y > expected_y + HIP_SAG_TOLERANCE


def _check_push_up(frame: PoseFrame, perspective: Perspective) -> list[FormIssue]:
    found: list[FormIssue] = []
    if perspective == Perspective.SIDE:
        score = body_alignment(frame)
        if score < ALIGNMENT_MIN:
            found.append(FormIssue(
                "alignment",
                Severity.MAJOR if score < ALIGNMENT_MAJOR else Severity.MODERATE,
                "Hips are sagging - engage your core."
                if _hip_sagging(frame)
                else "Keep your body in a straight line from shoulders through hips to ankles.",
                "Engage your core and glutes to maintain a rigid plank position.",
            ))
        return found
    if perspective != Perspective.FRONT:
        return found

    ls, rs = frame.get(K.LEFT_SHOULDER), frame.get(K.RIGHT_SHOULDER)
    le, re = frame.get(K.LEFT_ELBOW), frame.get(K.RIGHT_ELBOW)
    if ls and rs and le and re:
        shoulder_width = abs(rs.x - ls.x)
        if shoulder_width > 0 and abs(re.x - le.x) / shoulder_width > ELBOW_FLARE_RATIO:
            found.append(FormIssue(
                "elbow_flare",
                Severity.MODERATE,
                "Elbows flaring out too wide.",
                "Keep elbows at 45-degree angle from body.",
            ))
    return found


def _check_squat(frame: PoseFrame, perspective: Perspective) -> list[FormIssue]:
    found: list[FormIssue] = []
    lk, rk = frame.get(K.LEFT_KNEE), frame.get(K.RIGHT_KNEE)
    la, ra = frame.get(K.LEFT_ANKLE), frame.get(K.RIGHT_ANKLE)
    # Knee and ankle widths collapse in profile, so cave is judged facing the camera only.
    if perspective != Perspective.SIDE and lk and rk and la and ra:
        ankle_width = abs(ra.x - la.x)
        knee_width = abs(rk.x - lk.x)
        if knee_width < ankle_width * KNEE_CAVE_FRAC:
            found.append(FormIssue(
                "knee_cave",
                Severity.MAJOR,
                "Knees caving inward",
                "Push knees out over toes",
            ))
    if perspective == Perspective.SIDE:
        shoulder = frame.first_available(K.LEFT_SHOULDER, K.RIGHT_SHOULDER)
        hip = frame.first_available(K.LEFT_HIP, K.RIGHT_HIP)
        if shoulder and hip and abs(shoulder.x - hip.x) > FORWARD_LEAN_PX:
            found.append(FormIssue(
                "forward_lean",
                Severity.MODERATE,
                "Excessive forward lean",
                "Keep chest up and weight on mid-foot",
            ))
    return found


def _check_deadlift(frame: PoseFrame, perspective: Perspective) -> list[FormIssue]:
    """Rounded back, judged only near lockout; the trunk is near horizontal at the bottom of the hinge."""
    if perspective != Perspective.SIDE:
        return []
    shoulder = frame.first_available(K.LEFT_SHOULDER, K.RIGHT_SHOULDER)
    hip = frame.first_available(K.LEFT_HIP, K.RIGHT_HIP)
    knee = frame.first_available(K.LEFT_KNEE, K.RIGHT_KNEE)
    if shoulder is None or hip is None or knee is None:
        return []
    if angle_at(shoulder, hip, knee) < LOCKOUT_HIP_ANGLE:
        return []
    # Angle of the shoulder->hip line from the +x axis, folded to [0, 180].
    horizontal = Keypoint(shoulder.x + 1.0, shoulder.y)
    spine = angle_at(horizontal, shoulder, hip)
    if spine < SPINE_BAND[0] or spine > SPINE_BAND[1]:
        return [FormIssue(
            "rounded_back",
            Severity.MAJOR,
            "Keep spine neutral",
            "Maintain flat back throughout the lift",
        )]
    return []


def _check_swing(frame: PoseFrame, previous: Optional[PoseFrame]) -> list[FormIssue]:
    if previous is None:
        return []
    hip = frame.first_available(K.LEFT_HIP, K.RIGHT_HIP)
    prev_hip = previous.first_available(K.LEFT_HIP, K.RIGHT_HIP)
    if hip is None or prev_hip is None:
        return []
    if abs(hip.x - prev_hip.x) > SWING_PX:
        return [FormIssue(
            "kipping",
            Severity.MINOR,
            "Minimize body swing",
            "Use controlled movement, avoid kipping",
        )]
    return []


def detect_form_issues(
    exercise: ExerciseType,
    frame: PoseFrame,
    perspective: Perspective,
    previous: Optional[PoseFrame] = None,
) -> list[FormIssue]:
    """Issues visible in this frame (may contain repeated types; dedupe with add_issue)."""
    if exercise == ExerciseType.PUSH_UP:
        return _check_push_up(frame, perspective)
    if exercise == ExerciseType.SQUAT:
        return _check_squat(frame, perspective)
    if exercise == ExerciseType.DEADLIFT:
        return _check_deadlift(frame, perspective)
    if exercise in (ExerciseType.PULL_UP, ExerciseType.MUSCLE_UP):
        return _check_swing(frame, previous)
    return []
