"""
Accuracy skill model.

A player of a given skill hits each note with a normally distributed timing error whose
unstable rate grows as the note's strain rises above the skill. Summing the per-note
judgement score means and variances gives a normal approximation of the play's accuracy,
and root-finding over skill gives the skill at which a target accuracy is reached with a
2% chance.
"""
import logging
import math
from typing import NamedTuple

import numpy as np

from hit_windows import HitWindows, hit_probability
from mods import NO_MODS
from numerics import create_bins, find_root_expand, normal_cdf

logger = logging.getLogger(__name__)

MAX_JUDGEMENT_WEIGHT = 305

# Star rating is the skill needed for 95% accuracy.
STAR_RATING_ACCURACY = 0.95

# The player has a 2% chance of reaching the accuracy.
ACCURACY_PROBABILITY = 0.02

# UR on a note as hard as the player's skill, and when mashing.
SKILL_UR = 12
MASH_UR = 100
ACCURACY_EXPONENT = 3.2

TAIL_DEVIATION_MULTIPLIER = 1.8
TAIL_WINDOW_MULTIPLIER = 1.5

BIN_THRESHOLD = 128
BIN_COUNT = 32

CURVE_ACCURACIES = (1.00, 0.999, 0.998, 0.997, 0.995, 0.99, 0.985, 0.98, 0.975, 0.97,
                    0.96, 0.95, 0.94, 0.93, 0.92, 0.90, 0.85, 0.80, 0.75, 0.70)


def skill_to_ur(skill, difficulty, skill_ur=SKILL_UR):
    """Unstable rate on notes of the given difficulty; 0 for notes of difficulty 0."""
    difficulty = np.asarray(difficulty, dtype=float)
    ratio = np.divide(skill, difficulty, out=np.zeros_like(difficulty), where=difficulty != 0)
    ur = MASH_UR * (skill_ur / MASH_UR)**(ratio**ACCURACY_EXPONENT)
    return np.where(difficulty != 0, ur, 0.0)


class JudgementProbabilities(NamedTuple):
    """Chance of each judgement on a note; fields may be arrays, one entry per note."""
    perfect: float
    great: float
    good: float
    ok: float
    meh: float

    @classmethod
    def from_windows(cls, windows, unstable_rate):
        cumulative = [hit_probability(w, unstable_rate) for w in windows]
        return cls(cumulative[0], *(np.subtract(b, a) for a, b in zip(cumulative, cumulative[1:])))

    @property
    def miss(self):
        return 1 - (self.perfect + self.great + self.good + self.ok + self.meh)

    @property
    def score(self):
        return (MAX_JUDGEMENT_WEIGHT * self.perfect + 300 * self.great + 200 * self.good
                + 100 * self.ok + 50 * self.meh)

    @property
    def variance(self):
        score = self.score
        return ((MAX_JUDGEMENT_WEIGHT - score)**2 * self.perfect
                + (300 - score)**2 * self.great
                + (200 - score)**2 * self.good
                + (100 - score)**2 * self.ok
                + (50 - score)**2 * self.meh
                + score**2 * self.miss)


class AccuracyModel:

    def __init__(self, note_difficulties, long_note_difficulties, hit_windows, binned=None):
        self.notes = np.asarray(note_difficulties, dtype=float)
        long_notes = np.asarray(long_note_difficulties, dtype=float).reshape(-1, 2)
        self.heads = long_notes[:, 0]
        self.tails = long_notes[:, 1]
        self.hit_windows = hit_windows
        self.tail_windows = hit_windows.scaled(TAIL_WINDOW_MULTIPLIER)

        if binned is None:
            binned = len(self.notes) > BIN_THRESHOLD or len(self.heads) > BIN_THRESHOLD
        self.binned = binned

        self._note_bins = create_bins(self.notes, BIN_COUNT)
        self._head_bins = create_bins(self.heads, BIN_COUNT)
        self._tail_bins = create_bins(self.tails, BIN_COUNT)

    @classmethod
    def from_strains(cls, strains, od, mods=NO_MODS):
        return cls(strains.note_difficulties, strains.long_note_difficulties,
                   HitWindows.for_mods(od, mods))

    @property
    def object_count(self):
        return len(self.notes) + 2 * len(self.heads)

    @property
    def max_difficulty(self):
        if len(self.notes):
            return float(self.notes.max())
        if len(self.heads):
            return float((self.heads + self.tails).max())
        return 0.0

    def note_probabilities(self, difficulty, skill):
        return JudgementProbabilities.from_windows(self.hit_windows, skill_to_ur(skill, difficulty))

    def tail_probabilities(self, difficulty, skill):
        ur = skill_to_ur(skill, difficulty, SKILL_UR * TAIL_DEVIATION_MULTIPLIER)
        return JudgementProbabilities.from_windows(self.tail_windows, ur)

    def _groups(self):
        if self.binned:
            return ((self._note_bins.values[:, 0], self._note_bins.counts, self.note_probabilities),
                    (self._head_bins.values[:, 0], self._head_bins.counts, self.note_probabilities),
                    (self._tail_bins.values[:, 0], self._tail_bins.counts, self.tail_probabilities))
        return ((self.notes, 1, self.note_probabilities),
                (self.heads, 1, self.note_probabilities),
                (self.tails, 1, self.tail_probabilities))

    def _gaussian_probability(self, accuracy, skill):
        total = 0.0
        variance = 0.0
        for difficulties, counts, probabilities in self._groups():
            if len(difficulties) == 0:
                continue
            probs = probabilities(difficulties, skill)
            total += float(np.sum(counts * probs.score))
            variance += float(np.sum(counts * probs.variance))

        count = self.object_count
        mean = total / count / MAX_JUDGEMENT_WEIGHT
        deviation = math.sqrt(max(variance, 0.0)) / count / MAX_JUDGEMENT_WEIGHT + 1e-6
        return 1 - normal_cdf(mean, deviation, accuracy)

    def ss_probability(self, skill):
        """Chance that every head and tail lands in the perfect window."""
        with np.errstate(divide='ignore'):
            log_p = (np.sum(np.log(self.note_probabilities(self.notes, skill).perfect))
                     + np.sum(np.log(self.note_probabilities(self.heads, skill).perfect))
                     + np.sum(np.log(self.tail_probabilities(self.tails, skill).perfect)))
        return float(np.exp(log_p))

    def accuracy_probability(self, accuracy, skill):
        """Chance of reaching at least this accuracy at this skill."""
        # 0 at skill 0 so the root finder always has a bracket.
        if skill <= 0:
            return 0.0
        if accuracy >= 1:
            return self.ss_probability(skill)
        return self._gaussian_probability(accuracy, skill)

    def skill_for_probability(self, accuracy, target_probability=ACCURACY_PROBABILITY):
        if self.object_count == 0:
            return 0.0
        max_difficulty = self.max_difficulty
        if max_difficulty == 0:
            return 0.0
        return find_root_expand(lambda s: self.accuracy_probability(accuracy, s) - target_probability,
                                0, max_difficulty * 2)

    def difficulty_value(self):
        return self.skill_for_probability(STAR_RATING_ACCURACY)

    def ss_skill(self):
        return self.skill_for_probability(1.0)

    def accuracy_curve(self):
        curve = np.zeros(len(CURVE_ACCURACIES))
        if self.object_count == 0:
            return curve
        for i, accuracy in enumerate(CURVE_ACCURACIES):
            curve[i] = self.skill_for_probability(accuracy)
        return curve

    def accuracy_at_skill(self, skill, target_probability=ACCURACY_PROBABILITY):
        """The best accuracy a player of this skill reaches with the target probability."""
        if self.object_count == 0 or skill <= 0:
            return 0.0
        if self.ss_probability(skill) >= target_probability:
            return 1.0

        def f(a):
            return self._gaussian_probability(a, skill) - target_probability

        if f(0) <= 0:
            return 0.0
        return min(find_root_expand(f, 0, 1), 1.0)
