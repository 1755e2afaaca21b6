import functools
import logging

import numpy as np

logger = logging.getLogger(__name__)


def rao_quadratic_entropy_log(values, log_iterations=1):
    """
    Rao's quadratic entropy Q = sum_{i,j} p_i * p_j * d(i, j) over the integer categories in
    values, with d = |x - y| passed through log1p log_iterations times.
    """
    values = np.asarray(values)
    if values.size == 0:
        return 0.0

    unique, counts = np.unique(values, return_counts=True)
    p = counts / counts.sum()
    dist_matrix = functools.reduce(lambda acc, _: np.log1p(acc), range(log_iterations),
                                   np.abs(unique[:, None] - unique[None, :]).astype(float))
    return float(np.sum(np.outer(p, p) * dist_matrix))


def _gaps(times):
    return [int(times[i + 1] - times[i]) for i in range(len(times) - 1)]


def variety(note_seq, note_seq_by_column):  # note_seq sorted by head
    heads = [n.head for n in note_seq]
    tails = sorted(n.tail for n in note_seq)  # taps contribute their -1
    head_variety = rao_quadratic_entropy_log(_gaps(heads), log_iterations=1)
    tail_variety = rao_quadratic_entropy_log(_gaps(tails), log_iterations=1)

    column_gaps = []
    for column in note_seq_by_column:
        column_gaps += _gaps([n.head for n in column])
    col_variety = 2.5 * rao_quadratic_entropy_log(column_gaps, log_iterations=2)

    return 0.5 * head_variety + 0.11 * tail_variety + 0.45 * col_variety


def weighted_power_mean(D_sorted, w_sorted, exponent=5):
    total = np.sum(w_sorted)
    if total <= 0:
        return 0.0
    return float((np.sum(D_sorted**exponent * w_sorted) / total)**(1 / exponent))


def spikiness(D_sorted, w_sorted, exponent=5):
    weighted_mean = weighted_power_mean(D_sorted, w_sorted, exponent)
    total = np.sum(w_sorted)
    if weighted_mean <= 0 or total <= 0:
        return 0.0
    weighted_variance = (np.sum((D_sorted**8 - weighted_mean**8)**2 * w_sorted) / total)**(1 / 8)
    return float(np.sqrt(weighted_variance) / weighted_mean)


def _local_averages(gaps, radius=50):
    """Mean of gaps[i-radius .. i+radius], clipped at both ends."""
    n = len(gaps)
    cum = np.concatenate(([0.0], np.cumsum(gaps)))
    idx = np.arange(n)
    lo = np.maximum(0, idx - radius)
    hi = np.minimum(idx + radius, n - 1) + 1
    return (cum[hi] - cum[lo]) / (hi - lo)


def _signature(times, all_corners, Ks_arr, weights):
    """(signature, reference signature, gap count) for one stream of event times."""
    gaps = np.diff(np.asarray(times, dtype=float)) / 1000
    if gaps.size == 0:
        return 0.0, 0.0, 0
    idx_list = np.minimum(np.searchsorted(all_corners, times, side='left'), len(all_corners) - 1)
    Ks_at_note = Ks_arr[idx_list][:-1]
    weights_at_note = weights[idx_list][:-1]

    avgs = _local_averages(gaps)
    relative = np.divide(gaps, avgs, out=np.zeros_like(gaps), where=avgs > 0)
    signature = np.sum(np.sqrt(relative / gaps.size * weights_at_note) * Ks_at_note**(1/4))
    ref_signature = np.sqrt(np.sum(relative * weights_at_note))
    return float(signature), float(ref_signature), gaps.size


def switch(note_seq, tail_seq, all_corners, Ks_arr, weights):
    """
    How much the local key count changes under the note stream: each gap is compared to its
    ±50-gap local average and weighted by D at the note; the Ks^(1/4) exponent is what
    separates the signature from its reference.
    """
    heads = [n.head for n in note_seq]
    signature_head, ref_signature_head, head_count = _signature(heads, all_corners, Ks_arr, weights)

    tails = [n.tail for n in tail_seq]
    signature_tail, ref_signature_tail, tail_count = 0.0, 0.0, 0
    if len(tails) > 0 and tails[-1] > tails[0]:
        signature_tail, ref_signature_tail, tail_count = _signature(tails, all_corners, Ks_arr, weights)

    denominator = ref_signature_head * head_count + ref_signature_tail * tail_count
    if denominator <= 0:
        logger.debug("switch: no weighted gaps, falling back to zero contribution")
        return 0.5
    switches = (signature_head * head_count + signature_tail * tail_count) / denominator
    return switches / 2 + 0.5
