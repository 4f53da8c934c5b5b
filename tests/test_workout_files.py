from wrrecord.export.workout_files import (
    WORKOUT_DATA_HEADER,
    create_workout_dir,
    meta_data_rows,
    workout_data_row,
    workout_dir_name,
    write_meta_data_file,
    write_workout_data_file,
)
from wrrecord.rows.row_stats import InstantSample, WorkoutMeta, summarise

def test_workout_dir_name():
    assert workout_dir_name("2024-03-01 18:30:05") == "2024-03-01_18-30-05"

def test_create_workout_dir(tmp_path):
    path = create_workout_dir(str(tmp_path / "workouts"), "2024-03-01 18:30:05")
    assert (tmp_path / "workouts" / "2024-03-01_18-30-05").is_dir()
    assert path.endswith("2024-03-01_18-30-05")
    # Creating it again is harmless
    create_workout_dir(str(tmp_path / "workouts"), "2024-03-01 18:30:05")

def test_workout_data_row_formats_stroke_ratio():
    sample = InstantSample(time_in_seconds=65, distance_in_meters=300, seconds_per_500m=125,
                           stroke_count=30, strokes_per_minute=24, stroke_ratio=0.8, heart_rate=140)
    assert workout_data_row(sample) == ["65", "300", "125", "30", "24", "0.80", "140"]

def test_meta_data_rows_for_empty_workout():
    rows = dict(meta_data_rows(summarise([], WorkoutMeta(model="4", fw_version="12.13"))))
    assert len(rows) == 20
    assert rows["Number of Data Points"] == "0"
    assert rows["Seconds per 500 Meters (min)"] == "0"
    assert rows["Seconds per 500 Meters (avg)"] == "0.00"
    assert rows["Stroke Ratio (min)"] == "0.00"
    assert rows["Heart Rate (max)"] == "0"

def test_write_files(tmp_path):
    samples = [
        InstantSample(time_in_seconds=2, distance_in_meters=5, seconds_per_500m=130, stroke_count=1,
                      strokes_per_minute=20, stroke_ratio=1.0, heart_rate=0),
        InstantSample(time_in_seconds=4, distance_in_meters=11, seconds_per_500m=120, stroke_count=2,
                      strokes_per_minute=23, stroke_ratio=0.0, heart_rate=133),
    ]
    meta = WorkoutMeta("2024-03-01 18:30:05", "2024-03-01 18:40:00", "4", "12.13")
    meta_path = write_meta_data_file(str(tmp_path), summarise(samples, meta))
    data_path = write_workout_data_file(str(tmp_path), samples)

    meta_lines = (tmp_path / "meta_data.csv").read_text().splitlines()
    assert meta_path == str(tmp_path / "meta_data.csv")
    assert meta_lines[:8] == [
        "Date and Time of Start,2024-03-01 18:30:05",
        "Date and Time of End,2024-03-01 18:40:00",
        "WaterRower Model,4",
        "Firmware Version,12.13",
        "Number of Data Points,2",
        "Total Time in Seconds,4",
        "Total Distance in Meters,11",
        "Total Stroke Count,2",
    ]
    assert "Seconds per 500 Meters (avg),125.00" in meta_lines
    assert "Heart Rate (avg),133.00" in meta_lines

    data = (tmp_path / "workout_data.csv").read_bytes()
    assert data_path == str(tmp_path / "workout_data.csv")
    assert data == (
        ",".join(WORKOUT_DATA_HEADER) + "\n"
        "2,5,130,1,20,1.00,0\n"
        "4,11,120,2,23,0.00,133\n"
    ).encode()
