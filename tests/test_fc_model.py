import numpy as np
import pytest

import fc_model
from fc_model import MISS, MISS_CURVE_SKILL_FRACTIONS, FcModel, judgement_probabilities
from hit_windows import HitWindows

WINDOWS = HitWindows.lazer(8)


def test_judgement_probabilities_sum_to_one() -> None:
    for skill, difficulty in ((1.0, 3.0), (3.0, 3.0), (10.0, 1.0)):
        probs = judgement_probabilities(skill, difficulty, WINDOWS)
        assert len(probs) == 6
        assert sum(probs) == pytest.approx(1.0)
        assert all(p >= -1e-12 for p in probs)


def test_judgement_probability_special_cases() -> None:
    assert judgement_probabilities(0, 3.0, WINDOWS) == [0.0, 0.0, 0.0, 0.0, 0.0, 1.0]
    assert judgement_probabilities(2.0, 0, WINDOWS) == [1.0, 0.0, 0.0, 0.0, 0.0, 0.0]


def test_heads_and_tails_counted_twice_outside_classic() -> None:
    assert len(FcModel([1.0, 2.0], WINDOWS).difficulties) == 4
    assert len(FcModel([1.0, 2.0], WINDOWS, classic=True).difficulties) == 2


def test_empty_model() -> None:
    model = FcModel([], WINDOWS)
    assert model.difficulty_value() == 0.0
    assert model.judgement_count_at_skill(1.0) == 0.0
    assert model.fc_skill == 0.0
    assert model.miss_count_curve().tolist() == [0.0] * 7


def test_fc_probability_increases_with_skill() -> None:
    model = FcModel(np.linspace(1, 3, 20), WINDOWS)
    probs = [model.fc_probability(s) for s in (0.5, 1, 2, 4, 8)]
    assert probs[0] >= 0
    assert all(a <= b for a, b in zip(probs, probs[1:]))
    assert model.fc_probability(0) == 0.0


def test_fc_skill_hits_target_probability() -> None:
    model = FcModel(np.linspace(1, 3, 20), WINDOWS)
    skill = model.difficulty_value()
    assert skill > 0
    assert model.fc_probability(skill) == pytest.approx(0.02, abs=1e-3)


def test_binned_fc_skill_close_to_exact() -> None:
    model = FcModel(np.linspace(1, 3, 100), WINDOWS)
    exact = model.difficulty_value(binned=False)
    binned = model.difficulty_value(binned=True)
    assert binned == pytest.approx(exact, rel=1e-2)


def test_judgement_count_at_zero_skill() -> None:
    model = FcModel([1.0, 2.0, 3.0], WINDOWS)
    assert model.judgement_count_at_skill(0) == 6.0
    assert model.judgement_count_at_skill(0, "perfect") == 0.0


def test_miss_count_curve() -> None:
    model = FcModel(np.linspace(1, 3, 30), WINDOWS)
    curve = model.miss_count_curve()

    assert len(curve) == len(MISS_CURVE_SKILL_FRACTIONS)
    assert np.all(curve >= 0)
    assert curve[-1] == len(model.difficulties)
    assert curve[0] <= curve[-1]
    assert model.judgement_count_at_skill(model.fc_skill, MISS) < 2.0


def test_bins_are_built_once(monkeypatch) -> None:
    calls = []
    original = fc_model.create_bins

    def counting(values, bin_count):
        calls.append(bin_count)
        return original(values, bin_count)

    monkeypatch.setattr(fc_model, "create_bins", counting)
    model = FcModel(np.linspace(1, 3, 100), WINDOWS)
    model.difficulty_value(binned=True)
    model.miss_count_curve()

    assert calls == [32]


def test_fc_probability_counts_any_hit_as_kept_combo() -> None:
    model = FcModel([2.0], WINDOWS, classic=True)
    probs = judgement_probabilities(1.0, 2.0, WINDOWS)

    assert model.fc_probability(1.0) == pytest.approx(1 - probs[MISS])
    assert model.fc_probability(1.0) > probs[0]
