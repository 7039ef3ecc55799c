import unittest

from repcounter.perspective import Perspective, PerspectiveVotes, classify_perspective
from repcounter.pose import KeypointName as K

from synthetic import frame, push_up_points


def torso(shoulder_half_width, hip_half_width, shoulder_y=100.0, hip_y=300.0):
    return frame(0.0, {
        K.LEFT_SHOULDER: (200.0 - shoulder_half_width, shoulder_y),
        K.RIGHT_SHOULDER: (200.0 + shoulder_half_width, shoulder_y),
        K.LEFT_HIP: (200.0 - hip_half_width, hip_y),
        K.RIGHT_HIP: (200.0 + hip_half_width, hip_y),
    })


class ClassifyTest(unittest.TestCase):
    def test_wide_torso_is_front(self):
        self.assertEqual(classify_perspective(torso(60, 40)), Perspective.FRONT)

    def test_narrow_torso_is_side(self):
        self.assertEqual(classify_perspective(torso(5, 5)), Perspective.SIDE)

    def test_horizontal_plank_is_side(self):
        self.assertEqual(classify_perspective(frame(0.0, push_up_points(170.0))), Perspective.SIDE)

    def test_ambiguous_band_uses_shoulder_offset(self):
        # widths 60 and 54 -> ratio 0.285, shoulder width 60 > 50
        self.assertEqual(classify_perspective(torso(30, 27)), Perspective.FRONT)
        # widths 40 and 70 -> ratio 0.275, shoulder width 40 < 50
        self.assertEqual(classify_perspective(torso(20, 35)), Perspective.SIDE)

    def test_missing_hips_is_unknown(self):
        f = frame(0.0, {K.LEFT_SHOULDER: (0.0, 0.0), K.RIGHT_SHOULDER: (50.0, 0.0)})
        self.assertEqual(classify_perspective(f), Perspective.UNKNOWN)


class VotesTest(unittest.TestCase):
    def test_needs_minimum_votes(self):
        votes = PerspectiveVotes()
        for _ in range(4):
            self.assertEqual(votes.push(Perspective.FRONT), Perspective.UNKNOWN)
        self.assertEqual(votes.push(Perspective.FRONT), Perspective.FRONT)

    def test_single_frame_flicker_ignored(self):
        votes = PerspectiveVotes()
        for _ in range(10):
            votes.push(Perspective.SIDE)
        self.assertEqual(votes.push(Perspective.FRONT), Perspective.SIDE)
        self.assertEqual(votes.push(Perspective.SIDE), Perspective.SIDE)

    def test_switches_on_strict_majority(self):
        votes = PerspectiveVotes()
        for _ in range(10):
            votes.push(Perspective.SIDE)
        for _ in range(5):
            self.assertEqual(votes.push(Perspective.FRONT), Perspective.SIDE)
        self.assertEqual(votes.push(Perspective.FRONT), Perspective.FRONT)

    def test_copy_is_independent(self):
        votes = PerspectiveVotes()
        other = votes.copy()
        for _ in range(5):
            other.push(Perspective.SIDE)
        self.assertEqual(votes.current, Perspective.UNKNOWN)
        self.assertEqual(other.current, Perspective.SIDE)


if __name__ == "__main__":
    unittest.main()
