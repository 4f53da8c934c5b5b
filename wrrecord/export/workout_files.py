import csv
import logging
import os
from typing import Sequence

from wrrecord.rows.row_stats import InstantSample, WorkoutSummary

logger = logging.getLogger(__name__)

META_DATA_FILE = "meta_data.csv"
WORKOUT_DATA_FILE = "workout_data.csv"

WORKOUT_DATA_HEADER = [
    "Time in Seconds",
    "Distance in Meters",
    "Seconds per 500 Meters",
    "Stroke Count",
    "Strokes per Minute",
    "Stroke Ratio",
    "Heart Rate",
]


def workout_dir_name(date_time_start: str) -> str:
    # e.g. '2024-03-01 18:30:05' -> '2024-03-01_18-30-05'
    return date_time_start.replace(" ", "_").replace(":", "-")


def create_workout_dir(base_dir: str, date_time_start: str) -> str:
    path = os.path.join(base_dir, workout_dir_name(date_time_start))
    os.makedirs(path, exist_ok=True)
    logger.debug(f"Workout directory ready at {path}")
    return path


def meta_data_rows(summary: WorkoutSummary) -> list[list[str]]:
    meta = summary.meta
    return [
        ["Date and Time of Start", meta.date_time_start],
        ["Date and Time of End", meta.date_time_end],
        ["WaterRower Model", meta.model],
        ["Firmware Version", meta.fw_version],
        ["Number of Data Points", f"{summary.datapoints}"],
        ["Total Time in Seconds", f"{summary.total_time_in_seconds}"],
        ["Total Distance in Meters", f"{summary.total_distance_in_meters}"],
        ["Total Stroke Count", f"{summary.total_stroke_count}"],
        ["Seconds per 500 Meters (min)", f"{summary.seconds_per_500m.min}"],
        ["Seconds per 500 Meters (avg)", f"{summary.seconds_per_500m.avg:.2f}"],
        ["Seconds per 500 Meters (max)", f"{summary.seconds_per_500m.max}"],
        ["Strokes per Minute (min)", f"{summary.strokes_per_minute.min}"],
        ["Strokes per Minute (avg)", f"{summary.strokes_per_minute.avg:.2f}"],
        ["Strokes per Minute (max)", f"{summary.strokes_per_minute.max}"],
        ["Stroke Ratio (min)", f"{summary.stroke_ratio.min:.2f}"],
        ["Stroke Ratio (avg)", f"{summary.stroke_ratio.avg:.2f}"],
        ["Stroke Ratio (max)", f"{summary.stroke_ratio.max:.2f}"],
        ["Heart Rate (min)", f"{summary.heart_rate.min}"],
        ["Heart Rate (avg)", f"{summary.heart_rate.avg:.2f}"],
        ["Heart Rate (max)", f"{summary.heart_rate.max}"],
    ]


def workout_data_row(sample: InstantSample) -> list[str]:
    return [
        f"{sample.time_in_seconds}",
        f"{sample.distance_in_meters}",
        f"{sample.seconds_per_500m}",
        f"{sample.stroke_count}",
        f"{sample.strokes_per_minute}",
        f"{sample.stroke_ratio:.2f}",
        f"{sample.heart_rate}",
    ]


def write_meta_data_file(workout_path: str, summary: WorkoutSummary) -> str:
    path = os.path.join(workout_path, META_DATA_FILE)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerows(meta_data_rows(summary))
    logger.info(f"Meta data written to {path}")
    return path


def write_workout_data_file(workout_path: str, samples: Sequence[InstantSample]) -> str:
    path = os.path.join(workout_path, WORKOUT_DATA_FILE)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(WORKOUT_DATA_HEADER)
        for sample in samples:
            writer.writerow(workout_data_row(sample))
    logger.info(f"{len(samples)} data points written to {path}")
    return path
