from pathlib import Path

import pandas as pd

from helpers import tap
from mods import ModSettings
from srcalc_script import CSV_COLUMNS, main, process_folder


def test_process_folder_skips_broken_files(tmp_path: Path, write_osu, stream_objects) -> None:
    write_osu("good.osu", stream_objects)
    write_osu("taiko.osu", [tap(0, 0)], mode=1)
    (tmp_path / "notes.txt").write_text("not a beatmap", encoding="utf-8")

    results = process_folder(tmp_path, ModSettings())

    assert list(results.columns) == CSV_COLUMNS
    assert results["file"].tolist() == ["good.osu"]
    assert results["star_rating"].iloc[0] > 0


def test_main_writes_csv(tmp_path: Path, write_osu, stream_objects) -> None:
    write_osu("a.osu", stream_objects)
    write_osu("b.osu", stream_objects[:50])
    csv = tmp_path / "out.csv"

    assert main([str(tmp_path), "--once", "--csv", str(csv), "-M", "dt"]) == 0

    table = pd.read_csv(csv)
    assert table["file"].tolist() == ["a.osu", "b.osu"]
    assert set(table["mods"]) == {"DT"}


def test_main_rejects_missing_folder(tmp_path: Path) -> None:
    assert main([str(tmp_path / "nowhere"), "--once"]) == 1


def test_main_rejects_conflicting_mods(tmp_path: Path) -> None:
    assert main([str(tmp_path), "--once", "-M", "DT", "-M", "HT"]) == 1


def test_version(capsys) -> None:
    assert main(["--version"]) == 0
    assert "mania-difficulty" in capsys.readouterr().out
