"""
Camera perspective (side / front / unknown) from shoulder and hip geometry,
smoothed by majority vote over recent frames.
"""
from __future__ import annotations

import logging
from enum import Enum

import numpy as np

from .buffers import RingBuffer
from .geometry import distance, midpoint
from .pose import KeypointName, PoseFrame

logger = logging.getLogger(__name__)

# Width/torso ratio above which the subject faces the camera.
FRONT_RATIO = 0.35
# Width/torso ratio below which the subject is in profile.
SIDE_RATIO = 0.20
# Ambiguous band: shoulder offset above this fraction of the torso span means front.
SHOULDER_OFFSET_FRAC = 0.25
# Number of recent votes kept.
VOTE_WINDOW = 10
# Minimum votes a category needs before it becomes visible.
MIN_VOTES = 5
# Torso spans shorter than this (px) are treated as unusable.
MIN_TORSO_SPAN = 1e-6


class Perspective(str, Enum):
    SIDE = "side"
    FRONT = "front"
    UNKNOWN = "unknown"


_CODES = (Perspective.SIDE, Perspective.FRONT, Perspective.UNKNOWN)


def classify_perspective(frame: PoseFrame) -> Perspective:
    """Instantaneous (unsmoothed) perspective for one frame."""
    ls = frame.get(KeypointName.LEFT_SHOULDER)
    rs = frame.get(KeypointName.RIGHT_SHOULDER)
    lh = frame.get(KeypointName.LEFT_HIP)
    rh = frame.get(KeypointName.RIGHT_HIP)
    if ls is None or rs is None or lh is None or rh is None:
        return Perspective.UNKNOWN
    shoulder_width = abs(rs.x - ls.x)
    hip_width = abs(rh.x - lh.x)
    # Shoulder-mid to hip-mid distance; equals the vertical span when upright.
    span = distance(midpoint(ls, rs), midpoint(lh, rh))
    if span < MIN_TORSO_SPAN:
        return Perspective.UNKNOWN
    ratio = ((shoulder_width + hip_width) / 2.0) / span
    if ratio > FRONT_RATIO:
        return Perspective.FRONT
    if ratio < SIDE_RATIO:
        return Perspective.SIDE
    return Perspective.FRONT if shoulder_width > SHOULDER_OFFSET_FRAC * span else Perspective.SIDE


class PerspectiveVotes:
    """
    Sliding-window vote over instantaneous classifications.
    The visible perspective changes only on a strict majority with at least MIN_VOTES.
    """

    def __init__(self, window: int = VOTE_WINDOW, min_votes: int = MIN_VOTES):
        self.min_votes = min_votes
        self._votes = RingBuffer(window, dtype=np.int8)
        self.current = Perspective.UNKNOWN

    def push(self, vote: Perspective) -> Perspective:
        self._votes.append(_CODES.index(vote))
        counts = np.bincount(self._votes.values(), minlength=len(_CODES))
        winner = int(np.argmax(counts))
        n = int(counts[winner])
        if n >= self.min_votes and n * 2 > len(self._votes):
            leader = _CODES[winner]
            if leader != self.current:
                logger.debug("perspective: %s -> %s (%s/%s votes)", self.current.value, leader.value, n, len(self._votes))
                self.current = leader
        return self.current

    def copy(self) -> "PerspectiveVotes":
        other = PerspectiveVotes.__new__(PerspectiveVotes)
        other.min_votes = self.min_votes
        other._votes = self._votes.copy()
        other.current = self.current
        return other
