"""
Exercise catalogue: per-exercise thresholds for rep detection plus display metadata.
Profiles are immutable and shared read-only across frames.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .pose import KeypointName as K


class UnknownExerciseError(ValueError):
    """Raised when an exercise name is not in the supported set."""


class ExerciseType(str, Enum):
    PUSH_UP = "push_up"
    PULL_UP = "pull_up"
    SIT_UP = "sit_up"
    SQUAT = "squat"
    DEADLIFT = "deadlift"
    MUSCLE_UP = "muscle_up"
    DIP = "dip"

    @classmethod
    def parse(cls, value: "ExerciseType | str") -> "ExerciseType":
        """Accept an ExerciseType or a name like 'push-up', 'pushups', 'Pull Up'."""
        if isinstance(value, ExerciseType):
            return value
        if not isinstance(value, str):
            raise UnknownExerciseError(f"Unknown exercise: {value!r}")
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        found = _ALIASES.get(key) or _ALIASES.get(key.replace("_", ""))
        if found is None:
            raise UnknownExerciseError(f"Unknown exercise: {value!r}")
        return found


_ALIASES: dict[str, ExerciseType] = {}
for _ex in ExerciseType:
    _ALIASES[_ex.value] = _ex
    _ALIASES[_ex.value.replace("_", "")] = _ex
    _ALIASES[_ex.value.replace("_", "") + "s"] = _ex


class ExerciseClass(str, Enum):
    # Rest is the extended limb; active phase is "down" (push-ups, squats, ...).
    STANDARD = "standard"
    # Rest is the hang; active phase is "up" (pull-ups, muscle-ups).
    PULL = "pull"


_ELBOW_CHAINS = (
    (K.RIGHT_SHOULDER, K.RIGHT_ELBOW, K.RIGHT_WRIST),
    (K.LEFT_SHOULDER, K.LEFT_ELBOW, K.LEFT_WRIST),
)
_HIP_CHAINS = (
    (K.RIGHT_SHOULDER, K.RIGHT_HIP, K.RIGHT_KNEE),
    (K.LEFT_SHOULDER, K.LEFT_HIP, K.LEFT_KNEE),
)
_KNEE_CHAINS = (
    (K.RIGHT_HIP, K.RIGHT_KNEE, K.RIGHT_ANKLE),
    (K.LEFT_HIP, K.LEFT_KNEE, K.LEFT_ANKLE),
)
_SHOULDERS = (K.LEFT_SHOULDER, K.RIGHT_SHOULDER)
_HIPS = (K.LEFT_HIP, K.RIGHT_HIP)


@dataclass(frozen=True)
class ThresholdProfile:
    """
    Rep-detection thresholds for one exercise.

    Side view uses the joint angle of the first complete chain in `angle_chains`.
    Front view uses the vertical position of `position_keypoints`, normalized
    to [0, 1] with 0 at the top of the observed range. `position_rises` is True
    when the active phase lifts the body (pull-up, sit-up). `ideal_excursion`
    is the full-rep travel of those keypoints in torso lengths, used for
    range of motion in position mode.
    """

    exercise: ExerciseType
    exercise_class: ExerciseClass
    up_angle: float
    down_angle: float
    min_angle_change: float
    up_ratio: float
    down_ratio: float
    min_rom: float
    min_duration: float  # seconds
    angle_chains: tuple[tuple[str, str, str], ...]
    position_keypoints: tuple[str, ...]
    position_rises: bool = False
    ideal_excursion: float = 0.5

    @property
    def contracted_angle(self) -> float:
        return min(self.up_angle, self.down_angle)

    @property
    def extended_angle(self) -> float:
        return max(self.up_angle, self.down_angle)

    @property
    def ideal_angle_delta(self) -> float:
        return abs(self.up_angle - self.down_angle)


PROFILES: dict[ExerciseType, ThresholdProfile] = {
    ExerciseType.PUSH_UP: ThresholdProfile(
        exercise=ExerciseType.PUSH_UP,
        exercise_class=ExerciseClass.STANDARD,
        up_angle=160.0,  # arms extended
        down_angle=90.0,  # arms bent
        min_angle_change=40.0,
        up_ratio=0.30,
        down_ratio=0.70,
        min_rom=70.0,
        min_duration=0.4,
        angle_chains=_ELBOW_CHAINS,
        position_keypoints=_SHOULDERS,
        ideal_excursion=0.5,
    ),
    ExerciseType.PULL_UP: ThresholdProfile(
        exercise=ExerciseType.PULL_UP,
        exercise_class=ExerciseClass.PULL,
        up_angle=50.0,  # chin over bar, elbows bent
        down_angle=160.0,  # dead hang
        min_angle_change=60.0,
        up_ratio=0.30,
        down_ratio=0.70,
        min_rom=80.0,
        min_duration=0.6,
        angle_chains=_ELBOW_CHAINS,
        position_keypoints=_SHOULDERS,
        ideal_excursion=0.5,
        position_rises=True,
    ),
    ExerciseType.SIT_UP: ThresholdProfile(
        exercise=ExerciseType.SIT_UP,
        exercise_class=ExerciseClass.STANDARD,
        up_angle=140.0,  # lying back (hip open)
        down_angle=80.0,  # curled up
        min_angle_change=40.0,
        up_ratio=0.30,
        down_ratio=0.70,
        min_rom=60.0,
        min_duration=0.5,
        angle_chains=_HIP_CHAINS,
        position_keypoints=_SHOULDERS,
        ideal_excursion=0.6,
        position_rises=True,
    ),
    ExerciseType.SQUAT: ThresholdProfile(
        exercise=ExerciseType.SQUAT,
        exercise_class=ExerciseClass.STANDARD,
        up_angle=170.0,  # standing (knee)
        down_angle=90.0,  # thighs parallel
        min_angle_change=45.0,
        up_ratio=0.30,
        down_ratio=0.70,
        min_rom=70.0,
        min_duration=0.5,
        angle_chains=_KNEE_CHAINS,
        position_keypoints=_HIPS,
        ideal_excursion=0.5,
    ),
    ExerciseType.DEADLIFT: ThresholdProfile(
        exercise=ExerciseType.DEADLIFT,
        exercise_class=ExerciseClass.STANDARD,
        up_angle=170.0,  # locked out (hip)
        down_angle=90.0,  # hinged over
        min_angle_change=45.0,
        up_ratio=0.30,
        down_ratio=0.70,
        min_rom=75.0,
        min_duration=0.6,
        angle_chains=_HIP_CHAINS,
        position_keypoints=_SHOULDERS,
        ideal_excursion=0.6,
    ),
    ExerciseType.MUSCLE_UP: ThresholdProfile(
        exercise=ExerciseType.MUSCLE_UP,
        exercise_class=ExerciseClass.PULL,
        up_angle=60.0,  # pull phase top
        down_angle=160.0,  # hang
        min_angle_change=70.0,
        up_ratio=0.25,
        down_ratio=0.75,
        min_rom=85.0,
        min_duration=0.8,
        angle_chains=_ELBOW_CHAINS,
        position_keypoints=_SHOULDERS,
        ideal_excursion=0.9,
        position_rises=True,
    ),
    ExerciseType.DIP: ThresholdProfile(
        exercise=ExerciseType.DIP,
        exercise_class=ExerciseClass.STANDARD,
        up_angle=170.0,  # arms extended
        down_angle=90.0,  # arms bent
        min_angle_change=40.0,
        up_ratio=0.30,
        down_ratio=0.70,
        min_rom=70.0,
        min_duration=0.4,
        angle_chains=_ELBOW_CHAINS,
        position_keypoints=_SHOULDERS,
        ideal_excursion=0.4,
    ),
}


def get_profile(exercise: ExerciseType | str) -> ThresholdProfile:
    return PROFILES[ExerciseType.parse(exercise)]


@dataclass(frozen=True)
class ExerciseInfo:
    name: str
    description: str
    target_muscles: tuple[str, ...]
    difficulty: str
    key_points: tuple[str, ...]


EXERCISE_INFO: dict[ExerciseType, ExerciseInfo] = {
    ExerciseType.PUSH_UP: ExerciseInfo(
        "Push-Ups",
        "Classic upper body exercise targeting chest, shoulders, and triceps.",
        ("Chest", "Shoulders", "Triceps", "Core"),
        "beginner",
        (
            "Keep your body in a straight line from head to heels",
            "Lower chest to near ground level",
            "Keep elbows at 45-degree angle from body",
            "Fully extend arms at the top",
        ),
    ),
    ExerciseType.PULL_UP: ExerciseInfo(
        "Pull-Ups",
        "Upper body pulling exercise for back and biceps.",
        ("Lats", "Biceps", "Rear Delts", "Forearms"),
        "intermediate",
        (
            "Start from a dead hang with arms fully extended",
            "Pull until chin is above the bar",
            "Control the descent",
            "Avoid swinging or kipping",
        ),
    ),
    ExerciseType.SIT_UP: ExerciseInfo(
        "Sit-Ups",
        "Core exercise targeting abdominal muscles.",
        ("Rectus Abdominis", "Hip Flexors", "Obliques"),
        "beginner",
        (
            "Keep feet flat on the ground",
            "Curl up by engaging abs, not pulling with neck",
            "Come up to at least 90 degrees",
            "Control the lowering phase",
        ),
    ),
    ExerciseType.SQUAT: ExerciseInfo(
        "Squats",
        "Fundamental lower body exercise.",
        ("Quadriceps", "Glutes", "Hamstrings", "Core"),
        "beginner",
        (
            "Feet shoulder-width apart, toes slightly out",
            "Lower until thighs are parallel to ground",
            "Keep knees tracking over toes",
            "Drive through heels to stand",
        ),
    ),
    ExerciseType.DEADLIFT: ExerciseInfo(
        "Deadlift",
        "Compound exercise for posterior chain development.",
        ("Lower Back", "Glutes", "Hamstrings", "Traps", "Forearms"),
        "intermediate",
        (
            "Bar over mid-foot, feet hip-width apart",
            "Hinge at hips, keep back flat",
            "Drive through heels, keep bar close to body",
            "Lock out hips and knees at top",
        ),
    ),
    ExerciseType.MUSCLE_UP: ExerciseInfo(
        "Muscle-Up",
        "Advanced calisthenics movement combining pull-up and dip.",
        ("Lats", "Chest", "Triceps", "Shoulders", "Core"),
        "advanced",
        (
            "Start with explosive pull-up",
            "Transition by rotating wrists over bar",
            "Push up to full arm extension",
            "Control the descent through both phases",
        ),
    ),
    ExerciseType.DIP: ExerciseInfo(
        "Dips",
        "Upper body pushing exercise for chest and triceps.",
        ("Chest", "Triceps", "Shoulders"),
        "intermediate",
        (
            "Start with arms fully extended",
            "Lower until upper arms are parallel to ground",
            "Keep elbows close to body for triceps focus",
            "Push up to full extension",
        ),
    ),
}
