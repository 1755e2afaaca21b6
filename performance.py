from dataclasses import dataclass

from accuracy import CURVE_ACCURACIES, MAX_JUDGEMENT_WEIGHT
from mods import NO_MODS


@dataclass
class ScoreStatistics:
    perfect: int = 0
    great: int = 0
    good: int = 0
    ok: int = 0
    meh: int = 0
    miss: int = 0

    @property
    def total_hits(self):
        return self.perfect + self.great + self.good + self.ok + self.meh + self.miss

    @property
    def accuracy(self):
        """Accuracy with the perfect judgement weighted above great."""
        if self.total_hits == 0:
            return 0.0
        return ((self.perfect * MAX_JUDGEMENT_WEIGHT + self.great * 300 + self.good * 200
                 + self.ok * 100 + self.meh * 50) / (self.total_hits * MAX_JUDGEMENT_WEIGHT))


@dataclass
class PerformanceAttributes:
    difficulty: float
    total: float


def accuracy_adjusted_skill(accuracy_curve, accuracy):
    """Skill read off the accuracy curve, linearly between its sampled accuracies; 0 below the last."""
    if accuracy >= 1:
        return float(accuracy_curve[0])
    for i in range(1, len(CURVE_ACCURACIES)):
        if CURVE_ACCURACIES[i] > accuracy:
            continue
        high_acc, high_skill = CURVE_ACCURACIES[i - 1], accuracy_curve[i - 1]
        low_acc, low_skill = CURVE_ACCURACIES[i], accuracy_curve[i]
        t = (accuracy - low_acc) / (high_acc - low_acc)
        return float(low_skill + (high_skill - low_skill) * t)
    return 0.0


def calculate_performance(attributes, statistics, mods=NO_MODS):
    multiplier = 100
    if mods.no_fail:
        multiplier *= 0.75
    if mods.easy:
        multiplier *= 0.5

    difficulty = accuracy_adjusted_skill(attributes.accuracy_curve, statistics.accuracy)
    return PerformanceAttributes(difficulty=difficulty, total=difficulty * multiplier)
