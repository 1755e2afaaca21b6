"""
Full-combo skill model: every note can also be mistapped, which always counts as a miss.
"""
import logging
import math

import numpy as np
from scipy.special import erfc

from hit_windows import HitWindows
from mods import NO_MODS
from numerics import PoissonBinomial, create_bins, find_root_expand

logger = logging.getLogger(__name__)

MISTAP_MULTIPLIER = 3
ACC_MULTIPLIER = 200
FC_PROBABILITY = 0.02

EXACT_THRESHOLD = 64
BIN_COUNT = 32

JUDGEMENTS = ('perfect', 'great', 'good', 'ok', 'meh', 'miss')
MISS = JUDGEMENTS.index('miss')

MISS_CURVE_SKILL_FRACTIONS = (1, 0.95, 0.9, 0.8, 0.6, 0.3, 0)


def miss_probability(difficulty, skill, window):
    """Chance of landing outside ``window``."""
    return erfc(skill * window / (math.sqrt(2) * difficulty * ACC_MULTIPLIER))


def judgement_probabilities(skill, difficulty, hit_windows):
    """[perfect, great, good, ok, meh, miss] for one note."""
    if skill == 0:
        return [0.0, 0.0, 0.0, 0.0, 0.0, 1.0]
    if difficulty == 0:
        return [1.0, 0.0, 0.0, 0.0, 0.0, 0.0]

    hit = math.tanh(skill / (difficulty * MISTAP_MULTIPLIER))
    outside = [miss_probability(difficulty, skill, w) for w in hit_windows]

    probs = [(1 - outside[0]) * hit]
    probs += [(outside[i] - outside[i + 1]) * hit for i in range(4)]
    mistap = 1 - hit
    probs.append(outside[4] + mistap - outside[4] * mistap)
    return [float(p) for p in probs]


class FcModel:

    def __init__(self, difficulties, hit_windows, classic=False):
        """
        difficulties holds one strain per note. Outside classic scoring heads and tails are
        judged separately, so every note counts twice.
        """
        d = np.asarray(difficulties, dtype=float)
        self.difficulties = d if classic else np.repeat(d, 2)
        self.hit_windows = hit_windows
        self._bins = create_bins(self.difficulties, BIN_COUNT)
        self._skill = None

    @classmethod
    def from_strains(cls, strains, od, mods=NO_MODS):
        difficulties = list(strains.note_difficulties) + [h for h, _ in strains.long_note_difficulties]
        return cls(difficulties, HitWindows.for_mods(od, mods), classic=mods.classic)

    @property
    def max_difficulty(self):
        return float(self.difficulties.max()) if len(self.difficulties) else 0.0

    def fc_probability(self, skill, binned=None):
        if skill <= 0:
            return 0.0
        if binned is None:
            binned = len(self.difficulties) >= EXACT_THRESHOLD
        if binned:
            values, counts = self._bins.values[:, 0], self._bins.counts
        else:
            values, counts = self.difficulties, np.ones(len(self.difficulties))

        log_p = 0.0
        for d, c in zip(values, counts):
            p = 1 - judgement_probabilities(skill, d, self.hit_windows)[MISS]
            if p <= 0:
                return 0.0
            log_p += c * math.log(p)
        return math.exp(log_p)

    def difficulty_value(self, binned=None):
        """Skill with a 2% chance of a full combo."""
        if len(self.difficulties) == 0:
            return 0.0
        max_difficulty = self.max_difficulty
        if max_difficulty <= 1e-10:
            return 0.0
        return find_root_expand(lambda s: self.fc_probability(s, binned) - FC_PROBABILITY,
                                0, 3.0 * max_difficulty, accuracy=1e-4)

    @property
    def fc_skill(self):
        if self._skill is None:
            self._skill = self.difficulty_value()
        return self._skill

    def judgement_count_at_skill(self, skill, judgement=MISS):
        """The lowest count of a judgement that a player of this skill reaches with a 2% chance."""
        if isinstance(judgement, str):
            judgement = JUDGEMENTS.index(judgement)
        if len(self.difficulties) == 0 or self.max_difficulty == 0:
            return 0.0
        if skill <= 0:
            return float(len(self.difficulties)) if judgement == MISS else 0.0

        if len(self.difficulties) > EXACT_THRESHOLD:
            values, counts = self._bins.values[:, 0], self._bins.counts
        else:
            values, counts = self.difficulties, None
        probabilities = [judgement_probabilities(skill, d, self.hit_windows)[judgement] for d in values]
        distribution = PoissonBinomial(probabilities, counts)

        count = find_root_expand(lambda x: distribution.cdf(x) - FC_PROBABILITY, -50, 1000, accuracy=1e-4)
        return max(0.0, count)

    def miss_count_curve(self):
        """Miss counts at fixed fractions of the full-combo skill."""
        skill = self.fc_skill
        return np.array([self.judgement_count_at_skill(skill * f) for f in MISS_CURVE_SKILL_FRACTIONS])
