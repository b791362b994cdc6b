"""
Unit tests for the command line entry point (apidrift/main.py)
"""

import json
from unittest.mock import patch

import pytest
import yaml

from apidrift.domain.baseline import BaselineIteration, IterationMetadata, RunMetadata
from apidrift.domain.result import ComparisonResult, ComparisonStatus
from apidrift.main import main
from apidrift.storage.baseline_store import FileSystemBaselineStore

CONFIG = {
    "testType": "REST",
    "rest": {
        "api1": {
            "baseUrl": "http://legacy.local",
            "authentication": {"clientId": "svc", "clientSecret": "cli-secret-value"},
            "operations": [{"name": "getUser"}],
        },
        "api2": {"baseUrl": "http://modern.local", "operations": [{"name": "getUser"}]},
    },
}


@pytest.fixture(autouse=True)
def isolate_log_level(monkeypatch):
    """Keep --log-level overrides from leaking into other tests."""
    monkeypatch.setenv("APIDRIFT_LOG_LEVEL", "INFO")


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "comparison.yaml"
    path.write_text(yaml.safe_dump(CONFIG), encoding="utf-8")
    return path


def _results(*statuses):
    return [ComparisonResult(operation_name="getUser", status=status) for status in statuses]


class TestRun:
    """Tests for running a comparison from the command line."""

    def test_all_match_exits_zero(self, config_path, tmp_path):
        """Test exit code 0 and reports written when everything matches."""
        output_dir = tmp_path / "reports"
        with patch("apidrift.main.ComparisonService") as service_cls:
            service_cls.return_value.execute.return_value = _results(ComparisonStatus.MATCH)
            code = main(["--config", str(config_path), "--output-dir", str(output_dir)])

        assert code == 0
        report = json.loads((output_dir / "results.json").read_text(encoding="utf-8"))
        assert report["metadata"]["test_type"] == "REST"
        assert (output_dir / "SUMMARY.md").is_file()

    def test_mismatch_exits_one(self, config_path, tmp_path):
        """Test exit code 1 when any result is not a match."""
        with patch("apidrift.main.ComparisonService") as service_cls:
            service_cls.return_value.execute.return_value = _results(
                ComparisonStatus.MATCH, ComparisonStatus.MISMATCH
            )
            code = main(["--config", str(config_path), "--output-dir", str(tmp_path / "out")])

        assert code == 1

    def test_error_exits_one(self, config_path, tmp_path):
        """Test exit code 1 when a result is an error."""
        with patch("apidrift.main.ComparisonService") as service_cls:
            service_cls.return_value.execute.return_value = _results(ComparisonStatus.ERROR)
            code = main(
                ["--config", str(config_path), "--output-dir", str(tmp_path / "out"), "--log-level", "DEBUG"]
            )

        assert code == 1

    def test_bad_config_exits_two(self, tmp_path, capsys):
        """Test configuration errors exit with code 2."""
        code = main(["--config", str(tmp_path / "missing.yaml")])

        assert code == 2
        assert "Configuration file not found" in capsys.readouterr().err

    def test_config_required(self):
        """Test --config is required for comparisons."""
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2


class TestListBaselines:
    """Tests for --list-baselines."""

    @pytest.fixture
    def store(self, tmp_path):
        store = FileSystemBaselineStore(tmp_path / "baselines")
        metadata = RunMetadata(
            run_id="run-001",
            service_name="users",
            capture_date="20251019",
            capture_timestamp="2025-10-19T10:00:00+09:00",
            test_type="REST",
            total_iterations=1,
            description="first capture",
            tags=["nightly"],
        )
        iteration = BaselineIteration(
            iteration_number=1,
            request_payload="{}",
            request_headers={},
            request_metadata=IterationMetadata(iteration_number=1),
            response_payload="{}",
            response_headers={},
            response_metadata={"statusCode": 200},
        )
        store.save_baseline(metadata, [iteration])
        return store

    def test_list_services(self, store, capsys):
        """Test services are listed."""
        code = main(["--list-baselines", "--storage-dir", str(store.storage_dir)])

        assert code == 0
        assert "  - users" in capsys.readouterr().out

    def test_list_dates(self, store, capsys):
        """Test dates are listed for a service."""
        main(["--list-baselines", "--storage-dir", str(store.storage_dir), "--service", "users"])

        assert "  - 20251019" in capsys.readouterr().out

    def test_list_runs(self, store, capsys):
        """Test runs are listed with description and tags."""
        main(
            [
                "--list-baselines",
                "--storage-dir",
                str(store.storage_dir),
                "--service",
                "users",
                "--date",
                "20251019",
            ]
        )

        out = capsys.readouterr().out
        assert "run-001 (1 iterations" in out
        assert "[nightly]" in out
        assert "first capture" in out
