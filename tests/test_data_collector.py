import csv

import pytest

from drive_sim.data_collector import POSE_COLUMNS, DataCollector
from drive_sim.telemetry import TELEMETRY_COLUMNS


@pytest.fixture(autouse=True)
def no_env_run_dir(monkeypatch):
    monkeypatch.delenv("RUN_DIR", raising=False)


def read_rows(path):
    with open(path, newline="") as f:
        return list(csv.reader(f))


def test_timestamped_run_dir(tmp_path):
    collector = DataCollector(str(tmp_path))
    assert collector.run_dir.parent == tmp_path / "results"
    assert collector.run_dir.name.startswith("run_")
    assert collector.run_dir.is_dir()


def test_explicit_run_dir(tmp_path):
    target = tmp_path / "explicit"
    collector = DataCollector(str(tmp_path), run_dir=str(target))
    assert collector.run_dir == target
    assert target.is_dir()


def test_env_run_dir(tmp_path, monkeypatch):
    target = tmp_path / "from_env"
    monkeypatch.setenv("RUN_DIR", str(target))
    collector = DataCollector(str(tmp_path))
    assert collector.run_dir == target


def test_rejects_file_as_output_dir(tmp_path):
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    with pytest.raises(ValueError):
        DataCollector(str(not_a_dir))


def test_headers(tmp_path):
    with DataCollector(str(tmp_path), run_dir=str(tmp_path / "run")) as collector:
        pass

    telemetry = read_rows(collector.telemetry_output_path)
    poses = read_rows(collector.pose_output_path)
    assert telemetry == [["time"] + TELEMETRY_COLUMNS]
    assert poses == [POSE_COLUMNS]


def test_log_trace(tmp_path, robot):
    poses, data = [], []
    for _ in range(5):
        robot.update(6, 6)
        poses.append(robot.pose)
        data.append(robot.telemetry())

    with DataCollector(str(tmp_path), run_dir=str(tmp_path / "run")) as collector:
        collector.log_trace(poses, data, 0.005)

    assert collector.rows_written == 5

    telemetry = read_rows(collector.telemetry_output_path)
    pose_rows = read_rows(collector.pose_output_path)
    assert len(telemetry) == 6
    assert len(pose_rows) == 6
    assert float(telemetry[1][0]) == pytest.approx(0.005)
    assert float(pose_rows[-1][0]) == pytest.approx(0.025)
    assert float(pose_rows[-1][2]) == pytest.approx(poses[-1].y)


def test_log_summary(tmp_path):
    collector = DataCollector(str(tmp_path), run_dir=str(tmp_path / "run"))
    collector.log_summary({"scenario": "straight", "completed": True, "final_y": 1.5})

    lines = collector.summary_output_path.read_text().splitlines()
    assert lines == ["scenario: straight", "completed: True", "final_y: 1.500000"]
