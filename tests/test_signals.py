import numpy as np
import pytest

from beatmap import Chart, Note
from corners import get_corners
from hit_windows import hit_leniency
from signals import (LongNoteBodies, compute_anchor, compute_C_and_Ks, compute_Jbar, compute_Pbar,
                     compute_Rbar, compute_Xbar, cross_coefficients, get_key_usage,
                     get_key_usage_400, release_indices, stream_booster)

X = hit_leniency(40)


def test_cross_coefficients_fall_back_beyond_ten_keys() -> None:
    assert len(cross_coefficients(4)) == 5
    assert cross_coefficients(7)[0] == pytest.approx(0.225)
    assert cross_coefficients(12).tolist() == [0.4] * 13


def test_stream_booster_only_inside_bpm_band() -> None:
    assert stream_booster(0.1) == 1.0  # 75 bpm
    assert stream_booster(7.5 / 200) > 1.0
    assert stream_booster(7.5 / 400) == 1.0


def test_anchor_of_unused_corners_is_finite() -> None:
    anchor = compute_anchor(np.zeros((4, 3)))
    assert anchor.tolist() == pytest.approx([0.82, 0.82, 0.82])


def test_key_usage_marks_150ms_around_notes() -> None:
    base = np.array([0.0, 100.0, 200.0, 400.0, 1000.0])
    key_usage = get_key_usage(2, 1001, [Note(0, 100)], base)

    assert key_usage[0].tolist() == [True, True, True, False, False]
    assert not key_usage[1].any()


def test_key_usage_400_is_flat_over_hold_and_falls_off() -> None:
    base = np.array([0.0, 300.0, 600.0, 900.0, 1200.0])
    usage = get_key_usage_400(1, 1301, [Note(0, 300, 900)], base)[0]

    assert usage[1] == pytest.approx(3.75 + 600 / 150)
    assert usage[0] == pytest.approx(3.75 - 3.75 / 400**2 * 300**2)
    assert usage[3] == pytest.approx(3.75)


def test_long_note_bodies_integral() -> None:
    bodies = LongNoteBodies([Note(0, 0, 1000)], 1001)

    assert bodies.sum(0, 1000) == pytest.approx(60 * 1.3 + 880 * 1.0)
    assert bodies.sum(100, 200) == pytest.approx(20 * 1.3 + 80 * 1.0)
    assert bodies.sum(1000, 1001) == pytest.approx(0.0)


def test_Jbar_tracks_column_gaps() -> None:
    chart = Chart([Note(0, t) for t in (0, 200, 400, 600)], 1)
    _, base, _ = get_corners(chart.T, chart.note_seq)
    delta_ks, Jbar = compute_Jbar(1, X, chart.note_seq_by_column, base)

    inside = (base >= 0) & (base < 600)
    assert delta_ks[0][inside] == pytest.approx(0.2)
    assert np.all(delta_ks[0][~inside] == 1e9)
    assert np.all(np.isfinite(Jbar))
    assert Jbar.max() > 0


def test_simultaneous_taps_produce_a_spike_not_a_division_by_zero() -> None:
    chart = Chart([Note(0, 1000), Note(1, 1000)], 2)
    _, base, _ = get_corners(chart.T, chart.note_seq)
    key_usage = get_key_usage(2, chart.T, chart.note_seq, base)
    anchor = compute_anchor(get_key_usage_400(2, chart.T, chart.note_seq, base))

    Pbar = compute_Pbar(X, chart.note_seq, LongNoteBodies(chart.LN_seq, chart.T), anchor, base)
    Xbar = compute_Xbar(2, X, chart.note_seq_by_column, key_usage, base)

    assert np.all(np.isfinite(Pbar))
    assert Pbar.max() > 0
    assert np.all(np.isfinite(Xbar))


def test_density_counts_heads_and_tails_separately() -> None:
    notes = [Note(0, 0), Note(1, 100, 400)]
    base = np.array([0.0, 1000.0])
    key_usage = np.zeros((2, 2), dtype=bool)
    C, C_v2, Ks = compute_C_and_Ks(notes, key_usage, base)

    assert C.tolist() == [2.0, 0.0]
    assert C_v2.tolist() == [3.0, 0.0]
    assert Ks.tolist() == [1.0, 1.0]


def test_release_index_without_following_note() -> None:
    chart = Chart([Note(0, 0, 300), Note(1, 100, 500), Note(0, 600)], 2)
    I_list = release_indices(X, chart.tail_seq, chart.tail_next_heads)

    assert len(I_list) == 2
    assert all(0 < i < 1 for i in I_list)

    _, base, _ = get_corners(chart.T, chart.note_seq)
    Rbar = compute_Rbar(X, chart.tail_seq, chart.tail_next_heads, base)
    assert np.all(np.isfinite(Rbar))
    assert Rbar.max() > 0
