"""
Per-note strain values for the skill model.

Every head (and long-note tail) gets a jack difficulty from the gap to the previous note in
its column. Two decaying accumulators run over those difficulties in time order: one per
column, and one over the whole chart that treats simultaneous events as a single chord.
A note's strain is the L2 norm of the two.
"""
import logging
from typing import NamedTuple

import numpy as np

logger = logging.getLogger(__name__)

DECAY_BASE = 0.125
INDIVIDUAL_MULTIPLIER = 0.25
OVERALL_MULTIPLIER = 0.27
JACK_MULTIPLIER = 0.36


class StrainEvent(NamedTuple):
    time: int
    column: int
    strain_time: float  # ms since the previous head in the column, or the hold duration for tails
    difficulty: float
    note_index: int
    is_tail: bool


class DecayState(NamedTuple):
    strain: float = 0.0


def decay_step(state, difficulty, delta_time, decay_base=DECAY_BASE):
    return DecayState(state.strain * decay_base**(delta_time / 1000) + difficulty)


def jack_difficulty(column_delta, average_delta=float('inf')):
    """Difficulty of a press column_delta ms after the previous one in its column."""
    average_delta = min(average_delta, 65)
    cheesed_delta = max(column_delta, average_delta, 1)
    difficulty = (1000 / cheesed_delta) * (1000 / (cheesed_delta + 60))
    difficulty *= 1 - 7e-5 * (1 / ((150 + abs(column_delta - 80)) / 1000)**4)
    return difficulty * JACK_MULTIPLIER


def strain_events(note_seq, key_count):
    """Head and tail events in time order, each carrying its jack difficulty."""
    by_column = [[] for _ in range(key_count)]
    for i, note in enumerate(note_seq):
        by_column[note.column].append(i)

    events = []
    for indices in by_column:
        heads = [note_seq[i].head for i in indices]
        for j, i in enumerate(indices):
            note = note_seq[i]
            column_delta = heads[j] - heads[j - 1] if j > 0 else heads[j]
            if j >= 2 and j + 1 < len(heads):
                average_delta = (heads[j + 1] - heads[j - 2]) / 4
            else:
                average_delta = float('inf')
            events.append(StrainEvent(note.head, note.column, column_delta,
                                      jack_difficulty(column_delta, average_delta), i, False))
            if note.is_long:
                duration = note.tail - note.head
                events.append(StrainEvent(note.tail, note.column, duration,
                                          jack_difficulty(duration), i, True))

    events.sort(key=lambda e: e.time)
    return events


def individual_strains(events, key_count):
    states = [DecayState() for _ in range(key_count)]
    values = np.zeros(len(events))
    for k, event in enumerate(events):
        states[event.column] = decay_step(states[event.column],
                                          event.difficulty * INDIVIDUAL_MULTIPLIER,
                                          event.strain_time)
        values[k] = states[event.column].strain
    return values


def overall_strains(events):
    """
    Chords (events sharing a time) are summed; the running strain is decayed by the gap to
    the next chord before the current chord is added.
    """
    values = np.zeros(len(events))
    state = DecayState()
    chord = []
    chord_difficulty = 0.0

    for k, event in enumerate(events):
        if chord and event.time != events[chord[-1]].time:
            state = decay_step(state, chord_difficulty, event.time - events[chord[-1]].time)
            values[chord] = state.strain
            chord = []
            chord_difficulty = 0.0
        chord.append(k)
        chord_difficulty += event.difficulty * OVERALL_MULTIPLIER

    if chord:
        state = DecayState(state.strain + chord_difficulty)
        values[chord] = state.strain
    return values


class NoteStrains(NamedTuple):
    note_difficulties: list     # taps
    long_note_difficulties: list  # (head, tail) per long note


def compute_strains(note_seq, key_count):
    events = strain_events(note_seq, key_count)
    combined = np.sqrt(individual_strains(events, key_count)**2 + overall_strains(events)**2)

    heads = {}
    tails = {}
    for event, value in zip(events, combined):
        (tails if event.is_tail else heads)[event.note_index] = float(value)

    note_difficulties = []
    long_note_difficulties = []
    for i, note in enumerate(note_seq):
        if note.is_long:
            long_note_difficulties.append((heads[i], tails[i]))
        else:
            note_difficulties.append(heads[i])

    logger.debug("strains: %d taps, %d long notes", len(note_difficulties), len(long_note_difficulties))
    return NoteStrains(note_difficulties, long_note_difficulties)
