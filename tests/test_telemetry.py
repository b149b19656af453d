"""Tests for the health telemetry logging module."""

import csv

from monitor.telemetry import FIELDS, CycleCsvStream, CycleRecord, write_records


class TestCycleRecord:
    def test_reset_record_to_row(self):
        rec = CycleRecord(
            timestamp=1000.0,
            cycle=42,
            speed_mps=7.25,
            cov_area_median=0.5,
            unhealthy=True,
            streak=3,
            should_reset=True,
            failsafe_updated=False,
            failsafe_x=1.5,
            failsafe_y=-2.0,
            failsafe_z=10.0,
        )
        row = rec.to_row()
        assert len(row) == len(FIELDS)
        assert row[0] == "1000.000"
        assert row[1] == 42
        assert row[2] == "7.250"
        assert row[4] == 1  # unhealthy
        assert row[5] == 3
        assert row[6] == 1  # should_reset
        assert row[7] == 0
        assert row[8] == "1.5000"

    def test_healthy_record_to_row(self):
        rec = CycleRecord(timestamp=1.0, cycle=1, speed_mps=1.0, failsafe_updated=True)
        row = rec.to_row()
        assert row[4] == 0
        assert row[6] == 0
        assert row[7] == 1


class TestCycleCsvStream:
    def test_creates_csv_file(self, tmp_path):
        logger = CycleCsvStream(tmp_path, prefix="test")
        path = logger.start()
        assert path.exists()
        assert path.name.startswith("test_")
        assert path.suffix == ".csv"
        logger.stop()

    def test_writes_header(self, tmp_path):
        logger = CycleCsvStream(tmp_path)
        path = logger.start()
        logger.stop()

        with open(path) as f:
            header = next(csv.reader(f))
        assert header == FIELDS

    def test_writes_records(self, tmp_path):
        logger = CycleCsvStream(tmp_path)
        path = logger.start()
        for i in range(10):
            logger.log(CycleRecord(timestamp=float(i), cycle=i, unhealthy=i % 2 == 0))
        logger.stop()

        with open(path) as f:
            rows = list(csv.reader(f))
        assert len(rows) == 11  # header + 10 records

    def test_no_write_before_start(self, tmp_path):
        logger = CycleCsvStream(tmp_path)
        # Should not raise
        logger.log(CycleRecord())

    def test_stop_without_start(self, tmp_path):
        logger = CycleCsvStream(tmp_path)
        # Should not raise
        logger.stop()

    def test_counts_rows(self, tmp_path):
        stream = CycleCsvStream(tmp_path)
        stream.start()
        for i in range(3):
            stream.log(CycleRecord(cycle=i))
        stream.stop()
        stream.log(CycleRecord(cycle=3))
        assert stream.rows == 3


class TestWriteRecords:
    def test_writes_all_rows(self, tmp_path):
        path = tmp_path / "out" / "cycles.csv"
        write_records(path, [CycleRecord(cycle=i) for i in range(3)])
        with open(path) as f:
            rows = list(csv.reader(f))
        assert rows[0] == FIELDS
        assert [r[1] for r in rows[1:]] == ["0", "1", "2"]

    def test_returns_row_count(self, tmp_path):
        assert write_records(tmp_path / "cycles.csv", [CycleRecord()] * 4) == 4

    def test_rotation_column(self, tmp_path):
        path = tmp_path / "cycles.csv"
        write_records(path, [CycleRecord(failsafe_rot_deg=12.5)])
        with open(path) as f:
            row = list(csv.DictReader(f))[0]
        assert row["failsafe_rot_deg"] == "12.500"
