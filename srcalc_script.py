import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

import algorithm
from mods import Mod, ModSettings
from osu_file_parser import BeatmapParseError

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["file", "mods", "star_rating", "variety", "acc_scalar", "total_notes", "spikiness",
               "switches", "accuracy_skill", "ss_skill", "fc_skill", "max_combo"]


def resource_path(relative_path: str) -> Path:
    base_path = Path(getattr(sys, '_MEIPASS', Path(__file__).parent))
    return base_path / relative_path


def build_parser():
    parser = argparse.ArgumentParser(description="Calculate SR for osu!mania beatmaps.")
    parser.add_argument("folder_path", nargs='?', default=Path.cwd(), type=Path, help='Path to the folder containing .osu files.')
    parser.add_argument("--mod", "-M", action="append", type=str.upper, choices=[mod.value for mod in Mod],
                        help='Mod to apply; repeat to combine (e.g. -M DT -M HR). Defaults to NM.')
    parser.add_argument("--csv", type=Path, help="Write the results table to this CSV file.")
    parser.add_argument("--once", action="store_true", help="Exit after one pass instead of waiting to run again.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output.")
    parser.add_argument("--version", "-V", action="store_true", help="Show build version (build time) and exit.")
    return parser


def process_folder(folder_path, mods):
    rows = []
    for file in sorted(Path(folder_path).iterdir()):
        if file.suffix != ".osu":
            continue
        try:
            attributes = algorithm.calculate_file(file, mods)
        except BeatmapParseError as e:
            logger.error("Skipping %s: %s", file.name, e)
            continue
        except ValueError as e:
            logger.error("Invalid notes in %s: %s", file.name, e)
            continue
        except OSError as e:
            logger.error("Cannot read %s: %s", file.name, e)
            continue
        print(f"({mods.acronym}) {file.stem} | {attributes.star_rating:.4f}")
        row = {"file": file.name, "mods": mods.acronym}
        row.update({name: getattr(attributes, name) for name in CSV_COLUMNS[2:]})
        rows.append(row)
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    build_time_file = resource_path("build_time")
    if build_time_file.exists():
        version_str = f" (algorithm version: {build_time_file.read_text(encoding='utf-8').strip()})"
    else:
        version_str = ""
    credit_str = f"mania-difficulty{version_str}"

    if args.version:
        print(credit_str)
        return 0

    folder_path = args.folder_path
    if not folder_path.is_dir():
        logger.error("%s is not a valid directory.", folder_path)
        return 1

    try:
        mods = ModSettings.from_mods(args.mod or [Mod.NM])
    except ValueError as e:
        logger.error("Invalid mod combination: %s", e)
        return 1

    print(credit_str)
    print(f"Dir: {folder_path}, Mod: {mods.acronym}\n")

    while True:
        results = process_folder(folder_path, mods)
        if args.csv is not None:
            results.to_csv(args.csv, index=False)
            logger.info("Wrote %d rows to %s", len(results), args.csv)
        if args.once:
            return 0
        try:
            input("SR calculation completed. Press Enter to run again or 'Ctrl+C' to exit.")
            print()
        except (KeyboardInterrupt, EOFError):
            return 0


if __name__ == "__main__":
    sys.exit(main())
