import math
import warnings

import pytest

from hit_windows import HitWindows, hit_leniency, hit_probability
from mods import ModSettings


def test_lazer_windows() -> None:
    windows = HitWindows.lazer(8)
    assert windows == pytest.approx((16.1, 40, 73, 103, 127))
    assert HitWindows.lazer(4).perfect == pytest.approx(20.0)


def test_hard_rock_and_easy_scale_windows() -> None:
    hr = HitWindows.lazer(8, ModSettings(hard_rock=True))
    ez = HitWindows.lazer(8, ModSettings(easy=True))
    assert hr.great == pytest.approx(40 / 1.4)
    assert ez.great == pytest.approx(56)


def test_classic_windows_are_floored() -> None:
    assert HitWindows.classic(8) == (16, 40, 73, 103, 127)
    assert HitWindows.classic(8, ModSettings(hard_rock=True)) == (11, 28, 52, 73, 90)


def test_classic_convert_windows() -> None:
    assert HitWindows.classic(3, is_convert=True) == (16, 47, 77, 97, 121)
    assert HitWindows.classic(7, is_convert=True) == (16, 34, 67, 97, 121)


def test_for_mods_picks_rule_set() -> None:
    assert HitWindows.for_mods(7.5, ModSettings(classic=True)) == HitWindows.classic(7.5)
    assert HitWindows.for_mods(7.5) == HitWindows.lazer(7.5)


def test_rate_mods_scale_windows() -> None:
    nm = HitWindows.for_mods(8)
    dt = HitWindows.for_mods(8, ModSettings(rate=1.5))
    ht = HitWindows.for_mods(8, ModSettings(rate=0.75))

    assert dt.great == pytest.approx(nm.great / 1.5)
    assert ht.great == pytest.approx(nm.great / 0.75)
    assert dt.leniency < nm.leniency < ht.leniency
    assert HitWindows.for_mods(8, ModSettings(rate=1.5, classic=True)).great == pytest.approx(40 / 1.5)


def test_leniency() -> None:
    assert hit_leniency(40) == pytest.approx(0.3 * math.sqrt(40 / 500))
    # capped by the linear piece for wide windows
    assert hit_leniency(100) == pytest.approx(0.6 * (0.3 * math.sqrt(0.2) - 0.09) + 0.09)
    assert hit_leniency(0) == 1e-9
    assert HitWindows.lazer(8).leniency == pytest.approx(hit_leniency(40))


def test_hit_probability() -> None:
    assert hit_probability(10, 0) == 1.0
    p = hit_probability(10, [0.0, 10.0])
    assert p.tolist() == pytest.approx([1.0, math.erf(1 / math.sqrt(2))])


def test_hit_probability_with_tiny_unstable_rate_is_silent() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert hit_probability(40, [1e-320, 5.0]).tolist() == pytest.approx([1.0, math.erf(8 / math.sqrt(2))])


def test_scaled() -> None:
    assert HitWindows.lazer(8).scaled(1.5).meh == pytest.approx(190.5)
