import logging
from typing import NamedTuple

from beatmap import Note

logger = logging.getLogger(__name__)

HOLD_NOTE_FLAG = 128
MANIA_MODE = 3


class BeatmapParseError(ValueError):
    pass


class ParsedBeatmap(NamedTuple):
    key_count: int
    od: float
    notes: list


def string_to_int(s):
    return int(float(s))


# Parser Class that can be used on other class.

class parser:
    def __init__(self, file_path):
        self.file_path = file_path
        self.od = -1.0
        self.column_count = -1
        self.mode = MANIA_MODE
        self.hit_object_lines = []

    def process(self):
        section = None
        with open(self.file_path, "r", encoding='utf-8-sig') as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line.startswith("//"):
                    continue
                if line.startswith("[") and line.endswith("]"):
                    section = line[1:-1]
                    continue

                if section == "HitObjects":
                    self.hit_object_lines.append((line_number, line))
                elif section in ("General", "Difficulty"):
                    self.read_setting(line, line_number)

        if self.mode != MANIA_MODE:
            raise BeatmapParseError(f"{self.file_path}: not an osu!mania beatmap (mode {self.mode})")
        if self.column_count <= 0:
            raise BeatmapParseError(f"{self.file_path}: missing or invalid CircleSize (key count)")
        if self.od < 0:
            raise BeatmapParseError(f"{self.file_path}: missing OverallDifficulty")

    def read_setting(self, line, line_number):
        key, sep, value = line.partition(":")
        if not sep:
            return
        key = key.strip()
        try:
            if key == "Mode":
                self.mode = string_to_int(value)
            elif key == "CircleSize":
                self.column_count = string_to_int(value)
            elif key == "OverallDifficulty":
                self.od = float(value)
        except ValueError as e:
            raise BeatmapParseError(f"{self.file_path}:{line_number}: bad value for {key}: {value.strip()!r}") from e

    # Main function for parsing note data.
    # https://osu.ppy.sh/wiki/en/Client/File_formats/osu_%28file_format%29#hit-objects
    def parse_hit_object(self, object_line, line_number):
        params = object_line.split(",")
        try:
            column = int(string_to_int(params[0]) * self.column_count / 512)
            column = min(max(column, 0), self.column_count - 1)
            note_start = string_to_int(params[2])
            note_type = int(params[3])

            # 1: single note
            # 128: Hold(LN), end time is the first field of the extras
            note_end = -1
            if note_type & HOLD_NOTE_FLAG:
                note_end = string_to_int(params[5].split(":")[0])
        except (IndexError, ValueError) as e:
            raise BeatmapParseError(f"{self.file_path}:{line_number}: malformed hit object {object_line!r}") from e

        if note_end >= 0 and note_end <= note_start:
            logger.warning("%s:%d: hold note ends at %d, not after its start %d; reading it as a tap",
                           self.file_path, line_number, note_end, note_start)
            note_end = -1
        return Note(column, note_start, note_end)

    def get_parsed_data(self):
        notes = [self.parse_hit_object(line, n) for n, line in self.hit_object_lines]
        return ParsedBeatmap(self.column_count, self.od, notes)


def parse_file(file_path):
    p_obj = parser(file_path)
    p_obj.process()
    return p_obj.get_parsed_data()
