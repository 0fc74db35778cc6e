"""
Tests for the publish journal.
"""

import json

from blogdeploy.core.recorder import FlightRecorder, list_runs


class TestFlightRecorder:
    def test_finalize_writes_json(self, tmp_path):
        recorder = FlightRecorder(tmp_path / "runs", "run-1")
        recorder.stage("building")
        recorder.log("BUILT", "3 files")

        recorder.finalize("published", revision="abc")

        data = json.loads((tmp_path / "runs" / "run-1.json").read_text())
        assert data["run_id"] == "run-1"
        assert data["status"] == "published"
        assert data["stage"] == "building"
        assert data["summary"] == {"revision": "abc"}
        assert [e["event"] for e in data["events"]] == ["STAGE", "BUILT", "FINISHED"]

    def test_disabled_recorder_writes_nothing(self, tmp_path):
        recorder = FlightRecorder(None, "run-1")
        recorder.log("BUILT")

        recorder.finalize("published")

        assert recorder.path is None
        assert list(tmp_path.iterdir()) == []

    def test_unwritable_folder_does_not_raise(self, tmp_path):
        blocker = tmp_path / "runs"
        blocker.write_text("a file, not a directory")

        FlightRecorder(blocker, "run-1").finalize("failed")


class TestListRuns:
    def test_newest_first(self, tmp_path):
        for run_id, started in [("a", "2026-01-01T10:00:00"), ("b", "2026-01-02T10:00:00")]:
            (tmp_path / f"{run_id}.json").write_text(
                json.dumps({"run_id": run_id, "started_at": started, "status": "published"})
            )

        runs = list_runs(tmp_path)

        assert [r["run_id"] for r in runs] == ["b", "a"]

    def test_limit(self, tmp_path):
        for i in range(5):
            (tmp_path / f"{i}.json").write_text(
                json.dumps({"run_id": str(i), "started_at": f"2026-01-0{i + 1}"})
            )

        assert len(list_runs(tmp_path, limit=2)) == 2

    def test_corrupt_file_skipped(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json")
        (tmp_path / "good.json").write_text(json.dumps({"run_id": "good"}))

        assert [r["run_id"] for r in list_runs(tmp_path)] == ["good"]

    def test_missing_folder(self, tmp_path):
        assert list_runs(tmp_path / "nothing") == []
