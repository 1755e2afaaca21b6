OSU_TEMPLATE = """osu file format v14

[General]
AudioFilename: audio.mp3
Mode: {mode}

[Metadata]
Title:Test
Version:{version}
Source:

[Difficulty]
HPDrainRate:8
CircleSize:{key_count}
OverallDifficulty:{od}
ApproachRate:5

[TimingPoints]
0,300,4,2,0,70,1,0

[HitObjects]
{hit_objects}
"""


def osu_text(hit_objects, key_count=4, od=8, mode=3, version="Test"):
    return OSU_TEMPLATE.format(hit_objects="\n".join(hit_objects), key_count=key_count, od=od,
                               mode=mode, version=version)


def column_x(column, key_count):
    return int((column + 0.5) * 512 / key_count)


def tap(column, time, key_count=4):
    return f"{column_x(column, key_count)},192,{time},1,0,0:0:0:0:"


def hold(column, time, end, key_count=4):
    return f"{column_x(column, key_count)},192,{time},128,0,{end}:0:0:0:0:"
