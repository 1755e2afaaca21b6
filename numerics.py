import logging
import math
from typing import NamedTuple

import numpy as np
from scipy.optimize import brentq
from scipy.special import erf

logger = logging.getLogger(__name__)


def normal_cdf(mean, deviation, x):
    return 0.5 * (1 + erf((x - mean) / (deviation * math.sqrt(2))))


def find_root_expand(f, lower, upper, accuracy=1e-8, max_iterations=100, factor=1.6,
                     max_expand_iterations=100):
    """
    Root of f in [lower, upper], growing the upper bound geometrically until f changes sign.

    Never raises: if no bracket is found or the refinement does not converge, a warning is
    logged and the best available estimate is returned.
    """
    f_lower = f(lower)
    if f_lower == 0:
        return lower
    f_upper = f(upper)

    expansions = 0
    while f_lower * f_upper > 0 and expansions < max_expand_iterations:
        upper += factor * (upper - lower) if upper > lower else factor
        f_upper = f(upper)
        expansions += 1

    if f_upper == 0:
        return upper
    if f_lower * f_upper > 0:
        logger.warning("find_root_expand: no sign change in [%s, %s] after %d expansions",
                       lower, upper, expansions)
        return lower if abs(f_lower) < abs(f_upper) else upper

    root, result = brentq(f, lower, upper, xtol=accuracy, maxiter=max_iterations,
                          full_output=True, disp=False)
    if not result.converged:
        logger.warning("find_root_expand: brentq did not converge in %d iterations (%s)",
                       max_iterations, result.flag)
        return root if np.isfinite(root) else (lower + upper) / 2
    return root


class Bins(NamedTuple):
    values: np.ndarray   # (bin_count, dims) representative value per bin
    counts: np.ndarray   # members per bin, zero-count bins dropped


def create_bins(values, bin_count):
    """
    Split rows of values into bin_count groups of equal population after a stable sort by
    the first column. Each bin is represented by its per-column mean.
    """
    values = np.asarray(values, dtype=float)
    if values.ndim == 1:
        values = values[:, None]
    n = len(values)
    order = np.argsort(values[:, 0], kind='stable')
    ordered = values[order]

    reps = []
    counts = []
    for i in range(bin_count):
        start = i * n // bin_count
        end = (i + 1) * n // bin_count
        if end <= start:
            continue
        reps.append(ordered[start:end].mean(axis=0))
        counts.append(end - start)

    if not reps:
        return Bins(np.zeros((0, values.shape[1])), np.zeros(0, dtype=int))
    return Bins(np.array(reps), np.array(counts, dtype=int))


class PoissonBinomial:
    """
    Distribution of the number of successes among independent trials with unequal
    probabilities, via the refined normal approximation (Volkova 1996).
    ``counts`` lets one probability stand for several identical trials.
    """

    def __init__(self, probabilities, counts=None):
        p = np.asarray(probabilities, dtype=float)
        c = np.ones_like(p) if counts is None else np.asarray(counts, dtype=float)

        self.mu = float(np.sum(c * p))
        variance = float(np.sum(c * p * (1 - p)))
        self.sigma = math.sqrt(variance)
        if self.sigma > 0:
            self.gamma = float(np.sum(c * p * (1 - p) * (1 - 2 * p))) / self.sigma**3
        else:
            self.gamma = 0.0

    def cdf(self, count):
        if self.sigma == 0:
            return 1.0 if count >= self.mu else 0.0

        k = (count + 0.5 - self.mu) / self.sigma
        pdf = math.exp(-k * k / 2) / math.sqrt(2 * math.pi)
        result = normal_cdf(0, 1, k) + self.gamma * (1 - k * k) * pdf / 6
        return min(max(result, 0.0), 1.0)
