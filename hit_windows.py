import math
from typing import NamedTuple

import numpy as np
from scipy.special import erf

from mods import NO_MODS


def hit_leniency(great_window):
    """The 'x' used throughout the corner pipeline, in seconds, from the great (300) hit window in ms."""
    x = 0.3 * (great_window / 500)**0.5
    x = min(x, 0.6 * (x - 0.09) + 0.09)
    return max(1e-9, x)


def _window_multiplier(mods):
    if mods.hard_rock:
        return 1 / 1.4
    if mods.easy:
        return 1.4
    return 1.0


class HitWindows(NamedTuple):
    """Half-widths in ms of the five hit judgements, tightest first."""
    perfect: float
    great: float
    good: float
    ok: float
    meh: float

    @classmethod
    def lazer(cls, od, mods=NO_MODS):
        m = _window_multiplier(mods)
        perfect = 22.4 - 0.6 * od if od < 5 else 24.9 - 1.1 * od
        return cls(perfect * m,
                   (64 - 3 * od) * m,
                   (97 - 3 * od) * m,
                   (127 - 3 * od) * m,
                   (151 - 3 * od) * m)

    @classmethod
    def classic(cls, od, mods=NO_MODS, is_convert=False):
        great_leniency = 0
        good_leniency = 0
        # Stable converts play at OD 10 and get wider great/good windows when their own OD is 4 or lower.
        if is_convert:
            if od <= 4:
                great_leniency = 13
                good_leniency = 10
            od = 10

        m = _window_multiplier(mods)
        return cls(math.floor(16 * m),
                   math.floor((64 - 3 * od + great_leniency) * m),
                   math.floor((97 - 3 * od + good_leniency) * m),
                   math.floor((127 - 3 * od) * m),
                   math.floor((151 - 3 * od) * m))

    @classmethod
    def for_mods(cls, od, mods=NO_MODS):
        """Windows in real time: rate-adjusting mods shrink (DT) or widen (HT) them by 1 / rate."""
        windows = cls.classic(od, mods) if mods.classic else cls.lazer(od, mods)
        if mods.rate == 1.0:
            return windows
        return windows.scaled(1 / mods.rate)

    def scaled(self, multiplier):
        return HitWindows(*(w * multiplier for w in self))

    @property
    def leniency(self):
        return hit_leniency(self.great)


def hit_probability(window, unstable_rate):
    """P(|error| < window) for a normal hit error; an unstable rate of 0 always hits."""
    unstable_rate = np.asarray(unstable_rate, dtype=float)
    safe = np.where(unstable_rate != 0, unstable_rate, 1.0)
    with np.errstate(over='ignore'):
        p = erf(window / (safe * math.sqrt(2)))
    return np.where(unstable_rate != 0, p, 1.0)
