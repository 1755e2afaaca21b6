import numpy as np
import pytest

from accuracy import CURVE_ACCURACIES
from algorithm import DifficultyAttributes
from mods import ModSettings
from performance import ScoreStatistics, accuracy_adjusted_skill, calculate_performance

CURVE = np.arange(len(CURVE_ACCURACIES), 0, -1, dtype=float)


def test_score_accuracy_weights_perfect_above_great() -> None:
    assert ScoreStatistics(perfect=10).accuracy == 1.0
    assert ScoreStatistics(perfect=1, great=1).accuracy == pytest.approx(605 / 610)
    assert ScoreStatistics(good=1, miss=1).accuracy == pytest.approx(200 / 610)
    assert ScoreStatistics().accuracy == 0.0


def test_accuracy_adjusted_skill_interpolates_curve() -> None:
    assert accuracy_adjusted_skill(CURVE, 1.0) == CURVE[0]
    assert accuracy_adjusted_skill(CURVE, 0.9995) == pytest.approx((CURVE[0] + CURVE[1]) / 2)
    assert accuracy_adjusted_skill(CURVE, 0.95) == pytest.approx(CURVE[CURVE_ACCURACIES.index(0.95)])
    assert accuracy_adjusted_skill(CURVE, 0.5) == 0.0


def test_calculate_performance_applies_mod_multipliers() -> None:
    attributes = DifficultyAttributes(accuracy_curve=CURVE)
    statistics = ScoreStatistics(perfect=100)

    plain = calculate_performance(attributes, statistics)
    assert plain.difficulty == CURVE[0]
    assert plain.total == pytest.approx(CURVE[0] * 100)

    no_fail = calculate_performance(attributes, statistics, ModSettings(no_fail=True))
    assert no_fail.total == pytest.approx(CURVE[0] * 75)

    easy_no_fail = calculate_performance(attributes, statistics, ModSettings(easy=True, no_fail=True))
    assert easy_no_fail.total == pytest.approx(CURVE[0] * 37.5)
