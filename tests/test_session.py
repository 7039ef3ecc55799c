import unittest

from repcounter.exercises import ExerciseType, UnknownExerciseError
from repcounter.reps import CALIBRATION_FRAMES, Phase
from repcounter.session import SessionCounter, count_reps

from synthetic import angle_path, hold, push_up_points, timeline


def push_up_set(reps, bottom=95.0):
    frames = hold(0.0, 20, push_up_points(170.0))
    start = 0.7
    for _ in range(reps):
        frames += timeline(start, 0.9, angle_path(170.0, bottom, 172.0), push_up_points)
        end = frames[-1].timestamp
        frames += hold(end + 1 / 30, 10, push_up_points(172.0))
        start = frames[-1].timestamp + 1 / 30
    return frames


class SessionCounterTest(unittest.TestCase):
    def test_defaults_to_push_up(self):
        counter = SessionCounter()
        self.assertEqual(counter.exercise, ExerciseType.PUSH_UP)
        self.assertEqual(counter.phase, Phase.CALIBRATING)
        self.assertEqual(counter.rep_count, 0)

    def test_push_returns_records(self):
        counter = SessionCounter("push-up")
        records = [r for r in (counter.push(f) for f in push_up_set(1)) if r is not None]
        self.assertEqual(len(records), 1)
        self.assertEqual(counter.rep_count, 1)
        self.assertEqual(counter.phase, Phase.READY)

    def test_unknown_exercise_keeps_state(self):
        counter = SessionCounter(ExerciseType.PUSH_UP)
        for f in hold(0.0, CALIBRATION_FRAMES, push_up_points(170.0)):
            counter.push(f)
        self.assertEqual(counter.phase, Phase.READY)
        with self.assertRaises(UnknownExerciseError):
            counter.set_exercise("jumping jacks")
        self.assertEqual(counter.exercise, ExerciseType.PUSH_UP)
        self.assertEqual(counter.phase, Phase.READY)

    def test_set_exercise_resets(self):
        counter = SessionCounter()
        for f in push_up_set(1):
            counter.push(f)
        counter.set_exercise("squat")
        self.assertEqual(counter.exercise, ExerciseType.SQUAT)
        self.assertEqual(counter.rep_count, 0)
        self.assertEqual(counter.phase, Phase.CALIBRATING)

    def test_reset(self):
        counter = SessionCounter()
        for f in push_up_set(1):
            counter.push(f)
        counter.reset()
        self.assertEqual(counter.rep_count, 0)
        self.assertFalse(counter.snapshot().calibrated)

    def test_snapshot(self):
        counter = SessionCounter()
        for f in hold(0.0, CALIBRATION_FRAMES, push_up_points(170.0)):
            counter.push(f)
        snap = counter.snapshot()
        self.assertTrue(snap.calibrated)
        self.assertEqual(snap.issues, ())
        d = snap.as_dict()
        self.assertEqual(d["phase"], "ready")
        self.assertEqual(d["perspective"], "side")
        self.assertEqual(d["rep_count"], 0)
        self.assertAlmostEqual(d["baseline_angle"], 170.0, places=6)


class CountRepsTest(unittest.TestCase):
    def test_three_reps(self):
        records = count_reps(push_up_set(3), "push_up")
        self.assertEqual([r.rep_number for r in records], [1, 2, 3])
        self.assertTrue(all(r.is_valid for r in records))

    def test_with_smoothing(self):
        records = count_reps(push_up_set(2, bottom=80.0), ExerciseType.PUSH_UP, smoothing_alpha=0.5)
        self.assertEqual(len(records), 2)

    def test_unknown_exercise(self):
        with self.assertRaises(ValueError):
            count_reps([], "cartwheel")

    def test_no_frames(self):
        self.assertEqual(count_reps([], "squat"), [])


if __name__ == "__main__":
    unittest.main()
