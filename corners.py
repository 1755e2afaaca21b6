from typing import NamedTuple

import numpy as np


class CornerGrids(NamedTuple):
    all: np.ndarray
    base: np.ndarray
    A: np.ndarray


def _note_times(note_seq):
    times = set()
    for (_, h, t) in note_seq:
        times.add(h)
        if t >= 0:
            times.add(t)
    return times


def get_corners(T, note_seq):
    """
    Build the three evaluation grids.

    base: every head/tail time s plus s+1 (resolves the Dirac spikes exactly at notes),
          s+501 and s-499 (where a ±500 ms window starts or stops seeing the note).
    A:    s±1000, since the unsmoothed KU and A values already change at ±500 from
          note boundaries and are smoothed by another ±500 on top of that.
    all:  union of both, the domain D is finally evaluated on.

    Every grid also holds 0 and T and is clipped to [0, T].
    """
    times = _note_times(note_seq)

    corners_base = set(times)
    for s in times:
        corners_base.update((s + 1, s + 501, s - 499))
    corners_base.update((0, T))

    corners_A = set(times)
    for s in times:
        corners_A.update((s + 1000, s - 1000))
    corners_A.update((0, T))

    base_corners = np.array(sorted(s for s in corners_base if 0 <= s <= T), dtype=float)
    A_corners = np.array(sorted(s for s in corners_A if 0 <= s <= T), dtype=float)
    all_corners = np.union1d(base_corners, A_corners)
    return CornerGrids(all_corners, base_corners, A_corners)


def cumulative_sum(x, f):
    """
    Given sorted positions x and values f, piecewise constant on [x[i], x[i+1]),
    return F with F[0] = 0 and F[i] = sum_{j<i} f[j]*(x[j+1]-x[j]).
    """
    F = np.zeros(len(x))
    if len(x) > 1:
        F[1:] = np.cumsum(np.asarray(f[:-1], dtype=float) * np.diff(x))
    return F


def query_cumsum(q, x, F, f):
    """
    The integral of f from x[0] up to q, for scalar or array q.
    Points left of the grid give 0, points right of it give F[-1].
    """
    q = np.asarray(q, dtype=float)
    i = np.clip(np.searchsorted(x, q, side='right') - 1, 0, len(x) - 1)
    val = F[i] + np.asarray(f)[i] * (q - x[i])
    val = np.where(q <= x[0], 0.0, val)
    val = np.where(q >= x[-1], F[-1], val)
    return val


def smooth_on_corners(x, f, window, scale=1.0, mode='sum'):
    """
    Apply a symmetric sliding window to f (piecewise constant on x), exactly:
      'sum': g(s) = scale * integral of f over [s-window, s+window]
      'avg': g(s) = the same integral divided by the part of the window inside [x[0], x[-1]]
    """
    if mode not in ('sum', 'avg'):
        raise ValueError(f"unknown smoothing mode {mode!r}")
    x = np.asarray(x, dtype=float)
    if len(x) == 0:
        return np.zeros(0)
    F = cumulative_sum(x, f)
    a = np.maximum(x - window, x[0])
    b = np.minimum(x + window, x[-1])
    val = query_cumsum(b, x, F, f) - query_cumsum(a, x, F, f)
    if mode == 'avg':
        width = b - a
        return np.divide(val, width, out=np.zeros_like(val), where=width > 0)
    return scale * val


def interp_values(new_x, old_x, old_vals):
    """Linear interpolation, held flat outside [old_x[0], old_x[-1]]."""
    return np.interp(new_x, old_x, old_vals)


def step_interp(new_x, old_x, old_vals):
    """
    Zero-order hold: each new_x takes the value at the greatest old_x <= new_x
    (the first value when there is none).
    """
    old_vals = np.asarray(old_vals)
    indices = np.searchsorted(old_x, new_x, side='right') - 1
    indices = np.clip(indices, 0, len(old_vals) - 1)
    return old_vals[indices]


def advance(corners, pointer, t):
    """Move pointer forward to the first corner >= t. Never moves backwards."""
    n = len(corners)
    while pointer < n and corners[pointer] < t:
        pointer += 1
    return pointer
