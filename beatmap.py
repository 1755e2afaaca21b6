import math
from typing import NamedTuple


class Note(NamedTuple):
    """One tap or long note. ``tail`` is -1 for taps."""
    column: int
    head: int
    tail: int = -1

    @property
    def is_long(self):
        return self.tail >= 0


def apply_rate(notes, rate):
    """Rescale note times for rate-adjusting mods (DT: 1.5, HT: 0.75)."""
    if rate == 1.0:
        return list(notes)
    scaled = []
    for (k, h, t) in notes:
        h = int(math.floor(h / rate))
        t = int(math.floor(t / rate)) if t >= 0 else t
        scaled.append(Note(k, h, t))
    return scaled


class Chart:
    """
    The note structures every evaluator reads from, built once per calculation run.

    note_seq            all notes sorted by (head, column)
    note_seq_by_column  one list per column 0..K-1 (possibly empty), head order
    LN_seq              long notes in note_seq order
    tail_seq            long notes sorted by tail (stable)
    tail_next_heads     for tail_seq[i], head time of the next note in the same column, or None
    T                   map end + 1 (max over all head/tail times, plus one)
    """

    def __init__(self, notes, key_count):
        if key_count <= 0:
            raise ValueError(f"key count must be positive, got {key_count}")
        self.key_count = key_count

        note_seq = [n if isinstance(n, Note) else Note(*n) for n in notes]
        for n in note_seq:
            if not 0 <= n.column < key_count:
                raise ValueError(f"note column {n.column} is outside 0..{key_count - 1}")
            if n.is_long and n.tail <= n.head:
                raise ValueError(f"long note at {n.head} has tail {n.tail} not after its head")
        note_seq.sort(key=lambda n: (n.head, n.column))
        self.note_seq = note_seq

        self.note_seq_by_column = [[] for _ in range(key_count)]
        column_positions = []
        for n in note_seq:
            column_positions.append(len(self.note_seq_by_column[n.column]))
            self.note_seq_by_column[n.column].append(n)

        self.LN_seq = [n for n in note_seq if n.is_long]

        tails = []
        for n, pos in zip(note_seq, column_positions):
            if not n.is_long:
                continue
            column = self.note_seq_by_column[n.column]
            next_head = column[pos + 1].head if pos + 1 < len(column) else None
            tails.append((n, next_head))
        tails.sort(key=lambda pair: pair[0].tail)
        self.tail_seq = [n for n, _ in tails]
        self.tail_next_heads = [h for _, h in tails]

        if note_seq:
            self.T = max(max(n.head for n in note_seq), max(n.tail for n in note_seq)) + 1
        else:
            self.T = 0

    def __len__(self):
        return len(self.note_seq)

    @property
    def total_notes(self):
        # Length weighting: each tap counts once, long notes add up to 2.5 more for their body.
        return len(self.note_seq) + 0.5 * sum(min(t - h, 1000) / 200 for (_, h, t) in self.LN_seq)

    @property
    def max_combo(self):
        return sum(1 + (t - h) // 100 if t >= 0 else 1 for (_, h, t) in self.note_seq)
