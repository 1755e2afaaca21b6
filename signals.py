import heapq
import logging
import math
from collections import defaultdict

import numpy as np

from corners import advance, smooth_on_corners

logger = logging.getLogger(__name__)

# Cross-column weights per key count: row K holds one weight per column boundary 0..K.
cross_matrix = [
    [-1],
    [0.075, 0.075],
    [0.125, 0.05, 0.125],
    [0.125, 0.125, 0.125, 0.125],
    [0.175, 0.25, 0.05, 0.25, 0.175],
    [0.175, 0.25, 0.175, 0.175, 0.25, 0.175],
    [0.225, 0.35, 0.25, 0.05, 0.25, 0.35, 0.225],
    [0.225, 0.35, 0.25, 0.225, 0.225, 0.25, 0.35, 0.225],
    [0.275, 0.45, 0.35, 0.25, 0.05, 0.25, 0.35, 0.45, 0.275],
    [0.275, 0.45, 0.35, 0.25, 0.275, 0.275, 0.25, 0.35, 0.45, 0.275],
    [0.325, 0.55, 0.45, 0.35, 0.25, 0.05, 0.25, 0.35, 0.45, 0.55, 0.325]
]


def cross_coefficients(K):
    if K < len(cross_matrix):
        return np.array(cross_matrix[K], dtype=float)
    return np.full(K + 1, 0.4)


def jack_nerfer(delta):
    return 1 - 7e-5 * (0.15 + abs(delta - 0.08))**(-4)


def stream_booster(delta):
    bpm = 7.5 / delta
    if 160 < bpm < 360:
        return 1 + 1.7e-7 * (bpm - 160) * (bpm - 360)**2
    return 1.0


# -----Key usage--------

def get_key_usage(K, T, note_seq, base_corners):
    """key_usage[k, i]: column k is held or was/will be hit within 150 ms of base_corners[i]."""
    key_usage = np.zeros((K, len(base_corners)), dtype=bool)
    for (k, h, t) in note_seq:
        startTime = max(h - 150, 0)
        endTime = (h + 150) if t < 0 else min(t + 150, T - 1)
        left_idx = np.searchsorted(base_corners, startTime, side='left')
        right_idx = np.searchsorted(base_corners, endTime, side='left')
        key_usage[k, left_idx:right_idx] = True
    return key_usage


def get_active_columns(key_usage):
    return [np.flatnonzero(key_usage[:, i]).tolist() for i in range(key_usage.shape[1])]


def get_key_usage_400(K, T, note_seq, base_corners):
    """
    Continuous per-column usage: a flat 3.75 + min(duration, 1500)/150 over the note's span,
    falling off quadratically to zero over the 400 ms on either side.
    """
    key_usage_400 = np.zeros((K, len(base_corners)))
    for (k, h, t) in note_seq:
        startTime = max(h, 0)
        endTime = h if t < 0 else min(t, T - 1)
        left400_idx = np.searchsorted(base_corners, startTime - 400, side='left')
        left_idx = np.searchsorted(base_corners, startTime, side='left')
        right_idx = np.searchsorted(base_corners, endTime, side='left')
        right400_idx = np.searchsorted(base_corners, endTime + 400, side='left')

        key_usage_400[k, left_idx:right_idx] += 3.75 + min(endTime - startTime, 1500) / 150
        before = base_corners[left400_idx:left_idx]
        key_usage_400[k, left400_idx:left_idx] += 3.75 - 3.75 / 400**2 * (before - startTime)**2
        after = base_corners[right_idx:right400_idx]
        key_usage_400[k, right_idx:right400_idx] += 3.75 - 3.75 / 400**2 * (after - endTime)**2
    return key_usage_400


def compute_anchor(key_usage_400):
    """
    How evenly the load is spread over the used columns. Per corner the usage values are sorted
    descending (8, 5, 2, 2, 0...) and each adjacent nonzero pair scores 1 - 4*(0.5 - ratio)^2.
    """
    counts = -np.sort(-key_usage_400, axis=0)
    upper = counts[:-1]
    lower = counts[1:]
    valid = lower > 0
    ratio = np.divide(lower, upper, out=np.zeros_like(lower), where=valid)
    walk = np.sum(np.where(valid, upper * (1 - 4 * (0.5 - ratio)**2), 0.0), axis=0)
    max_walk = np.sum(np.where(valid, upper, 0.0), axis=0)
    anchor = np.divide(walk, max_walk, out=np.zeros_like(walk), where=max_walk > 0)
    return 1 + np.minimum(anchor - 0.18, 5 * (anchor - 0.22)**3)


# -----Same-column pressure--------

def compute_Jbar(K, x, note_seq_by_column, base_corners, lambda_n=5, lambda_1=0.11):
    """
    Same-column (jack) pressure. Returns the per-column gaps delta_ks (seconds, 1e9 where the
    column has no current pair) and Jbar aggregated over columns with a 1/delta-weighted
    lambda_n power mean.
    """
    n = len(base_corners)
    J_ks = np.zeros((K, n))
    delta_ks = np.full((K, n), 1e9)

    for k in range(K):
        notes = note_seq_by_column[k]
        pointer = 0
        for prev, nxt in zip(notes, notes[1:]):
            start = prev.head
            end = nxt.head
            left_idx = advance(base_corners, pointer, start)
            right_idx = advance(base_corners, left_idx, end)
            pointer = right_idx
            if left_idx == right_idx:
                continue
            delta = 0.001 * (end - start)
            val = (delta**(-1)) * (delta + lambda_1 * x**(1/4))**(-1)
            J_ks[k, left_idx:right_idx] = val * jack_nerfer(delta)
            delta_ks[k, left_idx:right_idx] = delta

    Jbar_ks = np.array([smooth_on_corners(base_corners, J_ks[k], window=500, scale=0.001, mode='sum')
                        for k in range(K)])

    weights = 1 / delta_ks
    num = np.sum(np.maximum(Jbar_ks, 0)**lambda_n * weights, axis=0)
    den = np.sum(weights, axis=0)
    Jbar = (num / np.maximum(1e-9, den))**(1 / lambda_n)
    return delta_ks, Jbar


# -----Cross-column pressure--------

def _is_active(key_usage, k, idx):
    if k < 0 or k >= key_usage.shape[0]:
        return False
    idx = min(idx, key_usage.shape[1] - 1)
    return bool(key_usage[k, idx])


def compute_Xbar(K, x, note_seq_by_column, key_usage, base_corners):
    """
    Cross-column pressure over every column boundary k = 0..K (boundary k sits between
    columns k-1 and k; the outer boundaries see a single column).
    """
    n = len(base_corners)
    cross_coeff = cross_coefficients(K)
    X_ks = np.zeros((K + 1, n))
    fast_cross = np.zeros((K + 1, n))

    for k in range(K + 1):
        if k == 0:
            notes_in_pair = note_seq_by_column[0]
        elif k == K:
            notes_in_pair = note_seq_by_column[K - 1]
        else:
            notes_in_pair = list(heapq.merge(note_seq_by_column[k - 1], note_seq_by_column[k],
                                             key=lambda note: note.head))
        pointer = 0
        for prev, nxt in zip(notes_in_pair, notes_in_pair[1:]):
            start = prev.head
            end = nxt.head
            idx_start = advance(base_corners, pointer, start)
            idx_end = advance(base_corners, idx_start, end)
            pointer = idx_end
            if idx_start == idx_end:
                continue
            delta = 0.001 * (end - start)
            val = 0.16 * max(x, delta)**(-2)
            left_missing = not _is_active(key_usage, k - 1, idx_start) and not _is_active(key_usage, k - 1, idx_end)
            right_missing = not _is_active(key_usage, k, idx_start) and not _is_active(key_usage, k, idx_end)
            if left_missing or right_missing:
                val *= (1 - cross_coeff[k])
            X_ks[k, idx_start:idx_end] = val
            fast_cross[k, idx_start:idx_end] = max(0, 0.4 * max(delta, 0.06, 0.75 * x)**(-2) - 80)

    X_base = np.sum(X_ks * cross_coeff[:, None], axis=0)
    weighted_fast = fast_cross * cross_coeff[:, None]
    X_base += np.sum(np.sqrt(weighted_fast[:-1] * weighted_fast[1:]), axis=0)

    return smooth_on_corners(base_corners, X_base, window=500, scale=0.001, mode='sum')


# -----Press intensity--------

class LongNoteBodies:
    """
    Sparse piecewise-constant count of held long-note bodies: 1.3 for the 60-120 ms after a
    head, 1.0 afterwards until the tail, with the total softened to min(c, 2.5 + 0.5c).
    """

    def __init__(self, LN_seq, T):
        diff = defaultdict(float)
        for (_, h, t) in LN_seq:
            t0 = min(h + 60, t)
            t1 = min(h + 120, t)
            diff[t0] += 1.3
            diff[t1] += -1.3 + 1
            diff[t] -= 1

        self.points = np.array(sorted(set(diff) | {0, T}), dtype=float)
        raw = np.cumsum([diff.get(p, 0.0) for p in self.points[:-1]])
        self.values = np.minimum(raw, 2.5 + 0.5 * raw)
        self.cumsum = np.concatenate(([0.0], np.cumsum(self.values * np.diff(self.points))))

    def _integral_to(self, q):
        if len(self.values) == 0:
            return 0.0
        i = int(np.searchsorted(self.points, q, side='right')) - 1
        i = min(max(i, 0), len(self.values) - 1)
        return self.cumsum[i] + self.values[i] * (q - self.points[i])

    def sum(self, a, b):
        """Integral of the body count over [a, b)."""
        return self._integral_to(b) - self._integral_to(a)


def compute_Pbar(x, note_seq, LN_bodies, anchor, base_corners, lambda_2=6.0, lambda_3=24.0):
    P_step = np.zeros(len(base_corners))
    pointer = 0
    for prev, nxt in zip(note_seq, note_seq[1:]):
        h_l = prev.head
        h_r = nxt.head
        delta_time = h_r - h_l
        if delta_time < 1e-9:
            # Simultaneous notes: a Dirac spike on the corner sitting exactly at the head,
            # once for every additional note of the chord.
            idx = int(np.searchsorted(base_corners, h_l, side='left'))
            if idx < len(base_corners) and base_corners[idx] == h_l:
                P_step[idx] += 1000 * max(0.0, 0.02 * (4 / x - lambda_3))**(1/4)
            continue

        left_idx = advance(base_corners, pointer, h_l)
        right_idx = advance(base_corners, left_idx, h_r)
        pointer = right_idx
        if left_idx == right_idx:
            continue

        delta = 0.001 * delta_time
        v = 1 + lambda_2 * 0.001 * LN_bodies.sum(h_l, h_r)
        b_val = stream_booster(delta)
        if delta < 2 * x / 3:
            spread = (delta - x / 2)**2
        else:
            spread = (x / 6)**2
        inc = delta**(-1) * (0.08 * x**(-1) * (1 - lambda_3 * x**(-1) * spread))**(1/4) * max(b_val, v)
        P_step[left_idx:right_idx] += np.minimum(inc * anchor[left_idx:right_idx], max(inc, inc * 2 - 10))

    return smooth_on_corners(base_corners, P_step, window=500, scale=0.001, mode='sum')


# -----Unevenness--------

def _unevenness_factor(cols, deltas):
    factor = 1.0
    for k0, k1 in zip(cols, cols[1:]):
        d0 = deltas[k0]
        d1 = deltas[k1]
        longest = max(d0, d1)
        d_val = abs(d0 - d1) + 0.4 * max(0, longest - 0.11)
        if d_val < 0.02:
            factor *= min(0.75 + 0.5 * longest, 1)
        elif d_val < 0.07:
            factor *= min(0.65 + 5 * d_val + 0.5 * longest, 1)
    return factor


def compute_Abar(active_columns, delta_ks, A_corners, base_corners):
    """
    Multiplicative penalty when adjacent active columns move at nearly the same pace,
    evaluated on the A grid from the base corner at or after each A corner.
    """
    idx_map = np.minimum(np.searchsorted(base_corners, A_corners, side='left'), len(base_corners) - 1)
    factors = {}
    A_step = np.ones(len(A_corners))
    for i, idx in enumerate(idx_map):
        idx = int(idx)
        if idx not in factors:
            factors[idx] = _unevenness_factor(active_columns[idx], delta_ks[:, idx])
        A_step[i] = factors[idx]

    return smooth_on_corners(A_corners, A_step, window=250, mode='avg')


# -----Release factor--------

def release_indices(x, tail_seq, tail_next_heads):
    """
    How far each release is from an 80 ms-ideal spacing, on both sides of the tail:
    I = 2 / (2 + exp(-5(I_h - 0.75)) + exp(-5(I_t - 0.75))).
    """
    I_list = []
    for (k, h, t), next_head in zip(tail_seq, tail_next_heads):
        I_h = 0.001 * abs(t - h - 80) / x
        denominator = 2 + math.exp(-5 * (I_h - 0.75))
        if next_head is not None:
            I_t = 0.001 * abs(next_head - t - 80) / x
            denominator += math.exp(-5 * (I_t - 0.75))
        I_list.append(2 / denominator)
    return I_list


def compute_Rbar(x, tail_seq, tail_next_heads, base_corners, lambda_4=0.8):
    R_step = np.zeros(len(base_corners))
    I_list = release_indices(x, tail_seq, tail_next_heads)

    pointer = 0
    for i in range(len(tail_seq) - 1):
        t_start = tail_seq[i].tail
        t_end = tail_seq[i + 1].tail
        left_idx = advance(base_corners, pointer, t_start)
        right_idx = advance(base_corners, left_idx, t_end)
        pointer = right_idx
        if left_idx == right_idx:
            continue
        delta_r = 0.001 * (t_end - t_start)
        R_step[left_idx:right_idx] = 0.08 * delta_r**(-0.5) * x**(-1) * (1 + lambda_4 * (I_list[i] + I_list[i + 1]))

    return smooth_on_corners(base_corners, R_step, window=500, scale=0.001, mode='sum')


# -----Density--------

def compute_C_and_Ks(note_seq, key_usage, base_corners):
    """
    C:    heads within [s-500, s+500)
    C_v2: heads and tails within the same window
    Ks:   number of active columns, at least 1
    """
    note_hit_times = np.sort([n.head for n in note_seq])
    all_hit_times = np.sort([n.head for n in note_seq] + [n.tail for n in note_seq if n.tail >= 0])

    low = base_corners - 500
    high = base_corners + 500
    C_step = (np.searchsorted(note_hit_times, high, side='left')
              - np.searchsorted(note_hit_times, low, side='left')).astype(float)
    C_v2_step = (np.searchsorted(all_hit_times, high, side='left')
                 - np.searchsorted(all_hit_times, low, side='left')).astype(float)

    Ks_step = np.maximum(key_usage.sum(axis=0), 1).astype(float)
    return C_step, C_v2_step, Ks_step
