from pathlib import Path

import pytest

from beatmap import Note
from helpers import hold, tap
from osu_file_parser import BeatmapParseError, parse_file


def test_parse_taps_and_holds(write_osu) -> None:
    path = write_osu("map.osu", [tap(0, 100), tap(3, 100), hold(1, 200, 700), tap(2, 900)], od=7.5)
    beatmap = parse_file(path)

    assert beatmap.key_count == 4
    assert beatmap.od == 7.5
    assert beatmap.notes == [Note(0, 100), Note(3, 100), Note(1, 200, 700), Note(2, 900)]


def test_columns_for_seven_keys(write_osu) -> None:
    objects = [tap(k, 100 * k, key_count=7) for k in range(7)]
    beatmap = parse_file(write_osu("7k.osu", objects, key_count=7))
    assert [n.column for n in beatmap.notes] == list(range(7))


def test_ten_keys(write_osu) -> None:
    beatmap = parse_file(write_osu("10k.osu", [tap(9, 0, key_count=10)], key_count=10))
    assert beatmap.key_count == 10
    assert beatmap.notes == [Note(9, 0)]


def test_hold_ending_before_start_is_read_as_tap(write_osu) -> None:
    beatmap = parse_file(write_osu("bad_hold.osu", [hold(0, 500, 500)]))
    assert beatmap.notes == [Note(0, 500)]


def test_empty_hit_objects(write_osu) -> None:
    assert parse_file(write_osu("empty.osu", [])).notes == []


def test_missing_key_count_raises(tmp_path: Path) -> None:
    path = tmp_path / "broken.osu"
    path.write_text("osu file format v14\n\n[Difficulty]\nOverallDifficulty:8\n\n[HitObjects]\n",
                    encoding="utf-8")
    with pytest.raises(BeatmapParseError):
        parse_file(path)


def test_non_mania_beatmap_raises(write_osu) -> None:
    with pytest.raises(BeatmapParseError):
        parse_file(write_osu("std.osu", [tap(0, 0)], mode=0))


def test_malformed_hit_object_raises(write_osu) -> None:
    with pytest.raises(BeatmapParseError, match="malformed"):
        parse_file(write_osu("garbled.osu", ["64,192,notatime,1,0"]))
