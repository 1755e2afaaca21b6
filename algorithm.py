import logging
from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np
import pandas as pd

import osu_file_parser as osu_parser
from accuracy import CURVE_ACCURACIES, AccuracyModel
from beatmap import Chart, apply_rate
from corners import get_corners, interp_values, step_interp
from fc_model import MISS_CURVE_SKILL_FRACTIONS, FcModel
from hit_windows import HitWindows
from mods import NO_MODS, ModSettings
from other_params import spikiness, switch, variety, weighted_power_mean
from signals import (LongNoteBodies, compute_Abar, compute_anchor, compute_C_and_Ks, compute_Jbar,
                     compute_Pbar, compute_Rbar, compute_Xbar, get_active_columns, get_key_usage,
                     get_key_usage_400)
from strains import compute_strains

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SrTuning:
    lambda_n: float = 5
    lambda_1: float = 0.11
    lambda_2: float = 6.0
    lambda_3: float = 24.0
    lambda_4: float = 0.8
    w_0: float = 0.4
    w_1: float = 2.7
    p_1: float = 1.5
    w_2: float = 0.27
    p_0: float = 1.0


DEFAULT_TUNING = SrTuning()

TARGET_PERCENTILES = np.array([0.945, 0.935, 0.925, 0.915, 0.845, 0.835, 0.825, 0.815])


# -----Start of Helper methods--------

def rescale_high(sr):
    if sr <= 9:
        return sr
    return 9 + (sr - 9) * (1 / 1.2)


def corner_gaps(all_corners):
    """Trapezoidal weight of each corner: half the distance between its two neighbours."""
    gaps = np.zeros(len(all_corners))
    if len(all_corners) < 2:
        return gaps
    gaps[0] = (all_corners[1] - all_corners[0]) / 2.0
    gaps[-1] = (all_corners[-1] - all_corners[-2]) / 2.0
    gaps[1:-1] = (all_corners[2:] - all_corners[:-2]) / 2.0
    return gaps


def resolve_mods(mods):
    return mods if isinstance(mods, ModSettings) else ModSettings.from_mods(mods)

# -----End of Helper methods--------


def aggregate_difficulty(Jbar, Xbar, Pbar, Abar, Rbar, C_arr, Ks_arr, tuning=DEFAULT_TUNING):
    """Pointwise combination of the smoothed signals into (S, T, D)."""
    w_0, w_1, p_1, w_2 = tuning.w_0, tuning.w_1, tuning.p_1, tuning.w_2
    S_all = ((w_0 * (Abar**(3 / Ks_arr) * np.minimum(Jbar, 8 + 0.85 * Jbar))**1.5) +
             ((1 - w_0) * (Abar**(2 / 3) * (0.8 * Pbar + Rbar * 35 / (C_arr + 8)))**1.5))**(2 / 3)
    T_all = (Abar**(3 / Ks_arr) * Xbar) / (Xbar + S_all + 1)
    D_all = w_1 * (S_all**0.5) * (T_all**p_1) + S_all * w_2
    return S_all, T_all, D_all


class ReducedDifficulty(NamedTuple):
    star_rating: float
    D_sorted: np.ndarray
    w_sorted: np.ndarray


def reduce_difficulty(df_corners, effective_weights, total_notes, tuning=DEFAULT_TUNING):
    """
    Collapse the difficulty curve to a star rating: percentile bands around the 93rd and 83rd
    weighted percentiles plus a weighted power mean, then length weighting and calibration.
    """
    df_sorted = df_corners.sort_values('D', kind='mergesort')
    D_sorted = df_sorted['D'].to_numpy()
    sorted_indices = df_sorted.index.to_numpy()
    w_sorted = effective_weights[sorted_indices]

    cum_weights = np.cumsum(w_sorted)
    total_weight = cum_weights[-1] if len(cum_weights) else 0.0

    if len(D_sorted) < len(TARGET_PERCENTILES) or total_weight <= 0:
        logger.debug("reduce: %d corners, total weight %s; using the plain mean", len(D_sorted), total_weight)
        percentile_93 = percentile_83 = float(np.mean(D_sorted)) if len(D_sorted) else 0.0
    else:
        norm_cum_weights = cum_weights / total_weight
        indices = np.searchsorted(norm_cum_weights, TARGET_PERCENTILES, side='left')
        indices = np.minimum(indices, len(D_sorted) - 1)
        percentile_93 = np.mean(D_sorted[indices[:4]])
        percentile_83 = np.mean(D_sorted[indices[4:8]])

    weighted_mean = weighted_power_mean(D_sorted, w_sorted, tuning.lambda_n)

    # Final SR calculation
    SR = (0.88 * percentile_93) * 0.25 + (0.94 * percentile_83) * 0.2 + weighted_mean * 0.55
    SR = SR**tuning.p_0 / (8**tuning.p_0) * 8

    SR *= total_notes / (total_notes + 60)

    SR = rescale_high(SR)
    SR *= 0.975
    return ReducedDifficulty(float(SR), D_sorted, w_sorted)


class SrParams(NamedTuple):
    star_rating: float
    spikiness: float
    switches: float
    corners: pd.DataFrame


def compute_sr_params(chart, x, classic=False, tuning=DEFAULT_TUNING):
    """Run the corner pipeline over a non-empty chart."""
    K = chart.key_count
    T = chart.T
    note_seq = chart.note_seq

    all_corners, base_corners, A_corners = get_corners(T, note_seq)
    logger.debug("corners: %d base, %d A, %d all", len(base_corners), len(A_corners), len(all_corners))

    # For each column, its usage (whether non-empty within 150 ms) over time: key_usage[k, idx].
    key_usage = get_key_usage(K, T, note_seq, base_corners)
    active_columns = get_active_columns(key_usage)

    key_usage_400 = get_key_usage_400(K, T, note_seq, base_corners)
    anchor = compute_anchor(key_usage_400)

    delta_ks, Jbar = compute_Jbar(K, x, chart.note_seq_by_column, base_corners,
                                  lambda_n=tuning.lambda_n, lambda_1=tuning.lambda_1)
    Jbar = interp_values(all_corners, base_corners, Jbar)

    Xbar = compute_Xbar(K, x, chart.note_seq_by_column, key_usage, base_corners)
    Xbar = interp_values(all_corners, base_corners, Xbar)

    LN_bodies = LongNoteBodies(chart.LN_seq, T)
    Pbar = compute_Pbar(x, note_seq, LN_bodies, anchor, base_corners,
                        lambda_2=tuning.lambda_2, lambda_3=tuning.lambda_3)
    Pbar = interp_values(all_corners, base_corners, Pbar)

    Abar = compute_Abar(active_columns, delta_ks, A_corners, base_corners)
    Abar = interp_values(all_corners, A_corners, Abar)

    Rbar = compute_Rbar(x, chart.tail_seq, chart.tail_next_heads, base_corners, lambda_4=tuning.lambda_4)
    Rbar = interp_values(all_corners, base_corners, Rbar)

    C_step, C_v2_step, Ks_step = compute_C_and_Ks(note_seq, key_usage, base_corners)
    C_arr = step_interp(all_corners, base_corners, C_step)
    C_v2_arr = step_interp(all_corners, base_corners, C_v2_step)
    Ks_arr = step_interp(all_corners, base_corners, Ks_step)

    # === Final Computations ===
    S_all, T_all, D_all = aggregate_difficulty(Jbar, Xbar, Pbar, Abar, Rbar, C_arr, Ks_arr, tuning)

    df_corners = pd.DataFrame({
        'time': all_corners,
        'Jbar': Jbar,
        'Xbar': Xbar,
        'Pbar': Pbar,
        'Abar': Abar,
        'Rbar': Rbar,
        'C': C_arr,
        'C_v2': C_v2_arr,
        'Ks': Ks_arr,
        'S': S_all,
        'T': T_all,
        'D': D_all
    })
    logger.debug("D ranges over [%.4f, %.4f]", df_corners['D'].min(), df_corners['D'].max())

    # The effective weight for each corner is the product of its density and its gap.
    density = C_arr if classic else C_v2_arr
    effective_weights = density * corner_gaps(all_corners)

    reduced = reduce_difficulty(df_corners, effective_weights, chart.total_notes, tuning)

    spike = spikiness(reduced.D_sorted, reduced.w_sorted, tuning.lambda_n)
    switches = switch(note_seq, chart.tail_seq, all_corners, Ks_arr, D_all)

    return SrParams(reduced.star_rating, spike, switches, df_corners)


@dataclass
class DifficultyAttributes:
    star_rating: float = 0.0
    variety: float = 0.0
    acc_scalar: float = 0.0
    total_notes: float = 0.0
    spikiness: float = 0.0
    switches: float = 0.0
    accuracy_skill: float = 0.0
    ss_skill: float = 0.0
    fc_skill: float = 0.0
    max_combo: int = 0
    accuracy_curve: np.ndarray = field(default_factory=lambda: np.zeros(len(CURVE_ACCURACIES)))
    miss_count_curve: np.ndarray = field(default_factory=lambda: np.zeros(len(MISS_CURVE_SKILL_FRACTIONS)))


def calculate_attributes(notes, key_count, od, mods=NO_MODS, tuning=DEFAULT_TUNING):
    mods = resolve_mods(mods)
    chart = Chart(apply_rate(notes, mods.rate), key_count)

    if len(chart) == 0:
        logger.warning("beatmap has no notes; returning zero difficulty")
        return DifficultyAttributes()

    # Hit leniency x
    x = HitWindows.for_mods(od, mods).leniency

    sr_params = compute_sr_params(chart, x, mods.classic, tuning)

    strains = compute_strains(chart.note_seq, key_count)
    accuracy_model = AccuracyModel.from_strains(strains, od, mods)
    fc_model = FcModel.from_strains(strains, od, mods)

    attributes = DifficultyAttributes(
        star_rating=sr_params.star_rating,
        variety=variety(chart.note_seq, chart.note_seq_by_column),
        acc_scalar=0.5 * sr_params.spikiness + 0.5 * sr_params.switches,
        total_notes=chart.total_notes,
        spikiness=sr_params.spikiness,
        switches=sr_params.switches,
        accuracy_skill=accuracy_model.difficulty_value(),
        ss_skill=accuracy_model.ss_skill(),
        fc_skill=fc_model.fc_skill,
        max_combo=chart.max_combo,
        accuracy_curve=accuracy_model.accuracy_curve(),
        miss_count_curve=fc_model.miss_count_curve(),
    )
    logger.debug("%d notes, %s: SR %.4f", len(chart), mods.acronym, attributes.star_rating)
    return attributes


def calculate_file(file_path, mod="NM", tuning=DEFAULT_TUNING):
    beatmap = osu_parser.parse_file(file_path)
    return calculate_attributes(beatmap.notes, beatmap.key_count, beatmap.od, mod, tuning)


def calculate(file_path, mod="NM", tuning=DEFAULT_TUNING):
    """Star rating of a .osu file, skipping the skill models."""
    beatmap = osu_parser.parse_file(file_path)
    mods = resolve_mods(mod)
    chart = Chart(apply_rate(beatmap.notes, mods.rate), beatmap.key_count)
    if len(chart) == 0:
        return 0.0
    x = HitWindows.for_mods(beatmap.od, mods).leniency
    return compute_sr_params(chart, x, mods.classic, tuning).star_rating
