import unittest

from repcounter.exercises import ExerciseType
from repcounter.form import FormIssue, Severity, add_issue, detect_form_issues
from repcounter.perspective import Perspective
from repcounter.pose import KeypointName as K

from synthetic import frame


def squat_front(knee_spread):
    return frame(0.0, {
        K.LEFT_HIP: (260.0, 300.0),
        K.RIGHT_HIP: (340.0, 300.0),
        K.LEFT_KNEE: (300.0 - knee_spread, 450.0),
        K.RIGHT_KNEE: (300.0 + knee_spread, 450.0),
        K.LEFT_ANKLE: (260.0, 550.0),
        K.RIGHT_ANKLE: (340.0, 550.0),
    })


class AddIssueTest(unittest.TestCase):
    def test_same_type_kept_once(self):
        issues = []
        first = FormIssue("knee_cave", Severity.MAJOR, "Knees caving inward", "Push knees out")
        again = FormIssue("knee_cave", Severity.MINOR, "other text", "other")
        self.assertTrue(add_issue(issues, first))
        self.assertFalse(add_issue(issues, again))
        self.assertEqual(issues, [first])


class SquatTest(unittest.TestCase):
    def test_knee_cave(self):
        found = detect_form_issues(ExerciseType.SQUAT, squat_front(10.0), Perspective.FRONT)
        self.assertEqual([i.type for i in found], ["knee_cave"])
        self.assertEqual(found[0].severity, Severity.MAJOR)

    def test_knee_cave_not_judged_in_side_view(self):
        # Staggered stance in profile: knees look narrower than ankles.
        self.assertEqual(detect_form_issues(ExerciseType.SQUAT, squat_front(10.0), Perspective.SIDE), [])
        found = detect_form_issues(ExerciseType.SQUAT, squat_front(10.0), Perspective.UNKNOWN)
        self.assertEqual([i.type for i in found], ["knee_cave"])

    def test_knees_over_toes_is_clean(self):
        self.assertEqual(detect_form_issues(ExerciseType.SQUAT, squat_front(40.0), Perspective.FRONT), [])

    def test_forward_lean_only_in_side_view(self):
        f = frame(0.0, {K.LEFT_SHOULDER: (300.0, 100.0), K.LEFT_HIP: (450.0, 300.0)})
        side = detect_form_issues(ExerciseType.SQUAT, f, Perspective.SIDE)
        self.assertEqual([i.type for i in side], ["forward_lean"])
        self.assertEqual(detect_form_issues(ExerciseType.SQUAT, f, Perspective.FRONT), [])


class PushUpTest(unittest.TestCase):
    def test_sagging_hips_in_side_view(self):
        f = frame(0.0, {
            K.LEFT_SHOULDER: (300.0, 200.0),
            K.LEFT_HIP: (500.0, 260.0),
            K.LEFT_ANKLE: (700.0, 200.0),
        })
        found = detect_form_issues(ExerciseType.PUSH_UP, f, Perspective.SIDE)
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].type, "alignment")
        self.assertEqual(found[0].severity, Severity.MAJOR)
        self.assertIn("sagging", found[0].message)

    def test_straight_plank_is_clean(self):
        f = frame(0.0, {
            K.LEFT_SHOULDER: (300.0, 200.0),
            K.LEFT_HIP: (500.0, 200.0),
            K.LEFT_ANKLE: (700.0, 200.0),
        })

    def test_elbow_flare_in_front_view(self):
        f = frame(0.0, {
            K.LEFT_SHOULDER: (250.0, 200.0),
            K.RIGHT_SHOULDER: (350.0, 200.0),
            K.LEFT_HIP: (260.0, 400.0),
            K.RIGHT_HIP: (340.0, 400.0),
            K.LEFT_ELBOW: (150.0, 210.0),
            K.RIGHT_ELBOW: (450.0, 210.0),
        })
        found = detect_form_issues(ExerciseType.PUSH_UP, f, Perspective.FRONT)
        self.assertEqual([i.type for i in found], ["elbow_flare"])

    def test_unknown_view_has_no_checks(self):
        f = frame(0.0, {
            K.LEFT_SHOULDER: (300.0, 200.0),
            K.LEFT_HIP: (500.0, 260.0),
            K.LEFT_ANKLE: (700.0, 200.0),
        })
        self.assertEqual(detect_form_issues(ExerciseType.PUSH_UP, f, Perspective.UNKNOWN), [])


class DeadliftTest(unittest.TestCase):
    def test_leaning_lockout_is_rounded(self):
        f = frame(0.0, {
            K.LEFT_SHOULDER: (300.0, 200.0),
            K.LEFT_HIP: (450.0, 300.0),
            K.LEFT_KNEE: (600.0, 400.0),
        })
        found = detect_form_issues(ExerciseType.DEADLIFT, f, Perspective.SIDE)
        self.assertEqual([i.type for i in found], ["rounded_back"])
        self.assertEqual(detect_form_issues(ExerciseType.DEADLIFT, f, Perspective.FRONT), [])

    def test_hinge_bottom_is_not_judged(self):
        f = frame(0.0, {
            K.LEFT_SHOULDER: (300.0, 200.0),
            K.LEFT_HIP: (500.0, 210.0),
            K.LEFT_KNEE: (500.0, 400.0),
        })
        self.assertEqual(detect_form_issues(ExerciseType.DEADLIFT, f, Perspective.SIDE), [])

    def test_upright_lockout_is_clean(self):
        f = frame(0.0, {
            K.LEFT_SHOULDER: (300.0, 100.0),
            K.LEFT_HIP: (300.0, 300.0),
            K.LEFT_KNEE: (300.0, 450.0),
        })
        self.assertEqual(detect_form_issues(ExerciseType.DEADLIFT, f, Perspective.SIDE), [])

    def test_missing_knee_is_not_judged(self):
        f = frame(0.0, {K.LEFT_SHOULDER: (300.0, 200.0), K.LEFT_HIP: (500.0, 210.0)})
        self.assertEqual(detect_form_issues(ExerciseType.DEADLIFT, f, Perspective.SIDE), [])


class SwingTest(unittest.TestCase):
    def test_hip_swing_between_frames(self):
        prev = frame(0.0, {K.LEFT_HIP: (300.0, 400.0)})
        swung = frame(0.033, {K.LEFT_HIP: (330.0, 400.0)})
        steady = frame(0.033, {K.LEFT_HIP: (310.0, 400.0)})
        found = detect_form_issues(ExerciseType.PULL_UP, swung, Perspective.SIDE, prev)
        self.assertEqual([i.type for i in found], ["kipping"])
        self.assertEqual(found[0].severity, Severity.MINOR)
        self.assertEqual(detect_form_issues(ExerciseType.MUSCLE_UP, steady, Perspective.SIDE, prev), [])
        self.assertEqual(detect_form_issues(ExerciseType.PULL_UP, swung, Perspective.SIDE, None), [])


class NoChecksTest(unittest.TestCase):
    def test_sit_up_and_dip_have_no_checks(self):
        f = squat_front(5.0)
        for exercise in (ExerciseType.SIT_UP, ExerciseType.DIP):
            self.assertEqual(detect_form_issues(exercise, f, Perspective.SIDE), [])


if __name__ == "__main__":
    unittest.main()
