from pathlib import Path

import pytest

from helpers import hold, osu_text, tap


@pytest.fixture
def write_osu(tmp_path: Path):
    def write(name, hit_objects, **kwargs) -> Path:
        path = tmp_path / name
        path.write_text(osu_text(hit_objects, **kwargs), encoding="utf-8")
        return path
    return write


@pytest.fixture
def stream_objects():
    """A 4K stream with a long note every seventh object."""
    objects = []
    for i in range(200):
        column = (i * 3) % 4
        time = 1000 + 110 * i
        if i % 7 == 0:
            objects.append(hold(column, time, time + 300))
        else:
            objects.append(tap(column, time))
    return objects
