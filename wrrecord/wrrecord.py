import argparse
import logging
import logging.config
import pathlib
import os
import sys

from wrrecord.s4.s4if import Rower, S4ConnectionError
from wrrecord.s4.s4 import RowerSession
from wrrecord.rows.row_stats import WorkoutSummary
from wrrecord.export.workout_files import (
    create_workout_dir,
    write_meta_data_file,
    write_workout_data_file,
)

PACKAGE_ROOT = pathlib.Path(__file__).parent.absolute()
LOGGING_CONFIG_PATH = PACKAGE_ROOT / "config" / "logging.conf"

DEFAULT_WORKOUT_DIR = "./workouts"

logger = logging.getLogger(__name__)


def configure_logging(log_dir: pathlib.Path, debug: bool = False) -> None:
    os.makedirs(log_dir, exist_ok=True)
    logging.config.fileConfig(
        str(LOGGING_CONFIG_PATH),
        defaults={'logdir': log_dir.as_posix()},
        disable_existing_loggers=False,
    )
    if debug:
        logging.getLogger('s4serial').setLevel(logging.DEBUG)
        logging.getLogger('wrrecord').setLevel(logging.DEBUG)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wrrecord", description="WaterRower Command Line Tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    record = subparsers.add_parser("record", help="Record a workout from the WaterRower S4 monitor")
    record.add_argument("-s", "--serial-dev", required=True,
                        help="Serial device for WaterRower communication")
    record.add_argument("-w", "--workout-dir", type=pathlib.Path, default=pathlib.Path(DEFAULT_WORKOUT_DIR),
                        help="Directory to store workouts' data")
    record.add_argument("-d", "--debug", action="store_true",
                        help="Prints debug information during runtime")
    return parser


def format_duration(seconds: int) -> str:
    return f"{seconds // 3600:02}:{seconds % 3600 // 60:02}:{seconds % 60:02}"


def record_workout(session: RowerSession, workout_dir: pathlib.Path) -> WorkoutSummary | None:
    """
    Runs a recording session to completion and writes its files.
    Returns:
        WorkoutSummary: once the files have been written.
        None: if the session was interrupted before the first stroke.
    """
    session.start()
    meta = session.read_model_info()
    print(f"--- Date and Time of Start:    {meta.date_time_start}")
    print(f"--- WaterRower Model:          {meta.model}")
    print(f"--- Firmware Version:          {meta.fw_version}")

    workout_path = create_workout_dir(str(workout_dir), meta.date_time_start)

    print("\n### Waiting for first stroke on WaterRower to begin ...")
    try:
        session.wait_for_first_stroke()
    except KeyboardInterrupt:
        logger.info("Interrupted while waiting for the first stroke")
        return None
    print("--- Detected!")

    print("\n### Recording workout ...")
    try:
        session.record()
    except KeyboardInterrupt:
        logger.info(f"Recording interrupted after {len(session.samples)} data points")

    print("\n### Closing WaterRower workout session ...")
    session.stop()
    summary = session.finalise()
    if session.dropped_cycles:
        logger.warning(f"{session.dropped_cycles} polling cycles were dropped")

    print(f"--- Date and Time of End:      {summary.meta.date_time_end}")
    print(f"--- Workout Duration:          {format_duration(summary.total_time_in_seconds)}")
    print(f"--- Total Distance in Meters:  {summary.total_distance_in_meters}")

    print("\n### Writing workout data and meta data to CSV files ...")
    write_meta_data_file(workout_path, summary)
    write_workout_data_file(workout_path, session.samples)
    return summary


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.workout_dir / 'logs', args.debug)

    print("\n### Initializing WaterRower workout recording ...")
    rower = Rower(args.serial_dev)
    try:
        with rower:
            summary = record_workout(RowerSession(rower), args.workout_dir)
    except S4ConnectionError as e:
        logger.error(f"S4 connection failed: {e}")
        print(f"!!! {e}", file=sys.stderr)
        return 1

    if summary is None:
        print("\n### Aborted before the first stroke.")
        return 130

    print("\n### Bye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
