"""Tests for the burnwatch CLI commands."""

import io
import json
import os
import subprocess
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import burnwatch
import pytest
import yaml
from burnwatch.cli.main import build_parser, main
from burnwatch.cli.replay import read_samples, replay_command
from burnwatch.cli.run import build_engine, collect_from_stream
from burnwatch.cli.validate import validate_command
from burnwatch.config.settings import Settings
from burnwatch.core.errors import ExitCode, InvalidSampleError
from burnwatch.slos.store import DuplicatePolicy

T0 = datetime(2025, 1, 10, 0, 0, tzinfo=timezone.utc)

FAST_TIER = {
    "severity": "critical",
    "short_window": "5m",
    "long_window": "30m",
    "threshold": 10,
    "for": "2m",
}


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "burnwatch.yaml"
    path.write_text(
        yaml.safe_dump({"slos": [{"name": "checkout", "target": 0.99, "tiers": [FAST_TIER]}]})
    )
    return path


@pytest.fixture
def samples_file(tmp_path):
    """90 minutes of traffic with 20% errors during minutes 40-69."""
    path = tmp_path / "samples.jsonl"
    lines = []
    for minute in range(90):
        good = 80 if 40 <= minute < 70 else 100
        lines.append(
            json.dumps(
                {
                    "slo": "checkout",
                    "timestamp": (T0 + timedelta(minutes=minute)).isoformat(),
                    "good": good,
                    "total": 100,
                }
            )
        )
    path.write_text("\n".join(lines) + "\n")
    return path


class TestValidateCommand:
    """Tests for validate_command."""

    def test_valid(self, config_file):
        assert validate_command(str(config_file)) == ExitCode.SUCCESS

    def test_json_output(self, config_file, capsys):
        validate_command(str(config_file), output_format="json")
        data = json.loads(capsys.readouterr().out)
        assert data["slos"][0]["name"] == "checkout"
        assert data["errors"] == {}

    def test_rejected_slo(self, tmp_path):
        path = tmp_path / "burnwatch.yaml"
        path.write_text(
            yaml.safe_dump(
                {"slos": [{"name": "checkout", "target": 0.99, "tiers": [dict(FAST_TIER, threshold=0)]}]}
            )
        )
        assert validate_command(str(path)) == ExitCode.CONFIG_ERROR

    def test_warning(self, tmp_path):
        path = tmp_path / "burnwatch.yaml"
        path.write_text(yaml.safe_dump({"slos": [{"name": "checkout", "target": 1.0}]}))
        assert validate_command(str(path)) == ExitCode.WARNING

    def test_missing_file(self, tmp_path):
        assert validate_command(str(tmp_path / "missing.yaml")) == ExitCode.CONFIG_ERROR


class TestReadSamples:
    """Tests for reading JSON-lines samples."""

    def test_sorted_oldest_first(self, tmp_path):
        path = tmp_path / "samples.jsonl"
        path.write_text(
            '{"slo": "a", "timestamp": "2025-01-10T00:05:00Z", "good": 1, "total": 1}\n'
            "\n"
            '{"slo": "a", "timestamp": "2025-01-10T00:01:00Z", "good": 2, "total": 2}\n'
        )
        samples = read_samples(path)
        assert [s.good for _, s in samples] == [2, 1]

    def test_malformed_line(self, tmp_path):
        path = tmp_path / "samples.jsonl"
        path.write_text('{"slo": "a", "good": 1}\n')
        with pytest.raises(InvalidSampleError) as exc_info:
            read_samples(path)
        assert exc_info.value.details["line"] == 1

    def test_invalid_counts(self, tmp_path):
        path = tmp_path / "samples.jsonl"
        path.write_text(
            '{"slo": "a", "timestamp": "2025-01-10T00:00:00Z", "good": 1, "total": 1}\n'
            '{"slo": "a", "timestamp": "2025-01-10T00:01:00Z", "good": 5, "total": 1}\n'
        )
        with pytest.raises(InvalidSampleError) as exc_info:
            read_samples(path)
        assert exc_info.value.details["line"] == 2


class TestReplayCommand:
    """Tests for replay_command."""

    def test_fires_then_resolves(self, config_file, samples_file, capsys):
        code = replay_command(str(config_file), str(samples_file), output_format="json")

        assert code == ExitCode.ALERTING
        events = json.loads(capsys.readouterr().out)
        assert [e["kind"] for e in events] == ["fired", "resolved"]
        assert events[0]["slo_name"] == "checkout"

    def test_healthy_traffic(self, config_file, tmp_path):
        path = tmp_path / "samples.jsonl"
        path.write_text(
            "\n".join(
                json.dumps(
                    {
                        "slo": "checkout",
                        "timestamp": (T0 + timedelta(minutes=m)).isoformat(),
                        "good": 100,
                        "total": 100,
                    }
                )
                for m in range(60)
            )
        )
        assert replay_command(str(config_file), str(path)) == ExitCode.SUCCESS

    def test_bad_samples_file(self, config_file, tmp_path):
        path = tmp_path / "samples.jsonl"
        path.write_text("not json\n")
        assert replay_command(str(config_file), str(path)) == ExitCode.VALIDATION_ERROR

    def test_no_valid_slos(self, tmp_path, samples_file):
        path = tmp_path / "burnwatch.yaml"
        path.write_text(yaml.safe_dump({"slos": [{"name": "checkout", "target": 2}]}))
        assert replay_command(str(path), str(samples_file)) == ExitCode.UNKNOWN_ERROR


class TestRunCommand:
    """Tests for the pieces of the run command."""

    def test_build_engine(self, config_file):
        settings = Settings(
            config_path=str(config_file),
            evaluation_interval_seconds=15,
            duplicate_policy="sum",
        )
        engine = build_engine(settings)
        assert [s.name for s in engine.slos] == ["checkout"]
        assert engine.evaluation_interval == timedelta(seconds=15)
        assert engine.store.duplicate_policy == DuplicatePolicy.SUM

    def test_collect_from_stream(self, config_file):
        engine = build_engine(Settings(config_path=str(config_file)))
        stream = io.StringIO(
            '{"slo": "checkout", "timestamp": "2025-01-10T00:00:00Z", "good": 9, "total": 10}\n'
            "garbage\n"
            '{"slo": "unknown", "timestamp": "2025-01-10T00:00:00Z", "good": 1, "total": 1}\n'
            '{"slo": "checkout", "timestamp": "2025-01-10T00:01:00Z", "good": 5, "total": 2}\n'
            '{"slo": "checkout", "timestamp": "2025-01-10T00:01:00Z", "good": 10, "total": 10}\n'
        )
        assert collect_from_stream(engine, stream) == 2
        assert engine.store.stats("checkout")["retained_buckets"] == 2


class TestMain:
    """Tests for the argument parser and entry point."""

    def test_parser_commands(self):
        parser = build_parser()
        args = parser.parse_args(["replay", "slos.yaml", "samples.jsonl", "--step", "30s"])
        assert args.command == "replay"
        assert args.step == "30s"

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
        assert "burnwatch" in capsys.readouterr().out

    def test_exit_code_from_handler(self, config_file):
        with pytest.raises(SystemExit) as exc_info:
            main(["validate", str(config_file)])
        assert exc_info.value.code == ExitCode.SUCCESS

    def test_version(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0


def run_cli(*args: str, cwd: Path) -> subprocess.CompletedProcess:
    """Run the console entry point in a fresh interpreter with debug logging."""
    src = str(Path(burnwatch.__file__).resolve().parents[1])
    env = {k: v for k, v in os.environ.items() if not k.startswith("BURNWATCH_")}
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src, env.get("PYTHONPATH")) if p)
    env["BURNWATCH_LOG_LEVEL"] = "DEBUG"
    return subprocess.run(
        [sys.executable, "-m", "burnwatch.cli.main", *args],
        capture_output=True,
        text=True,
        env=env,
        cwd=cwd,
        timeout=120,
    )


class TestConsoleOutput:
    """Stdout of --format json is parseable; log events go to stderr."""

    def test_replay_json(self, tmp_path, config_file, samples_file):
        proc = run_cli("replay", str(config_file), str(samples_file), "--format", "json", cwd=tmp_path)

        assert proc.returncode == ExitCode.ALERTING
        events = json.loads(proc.stdout)
        assert [e["kind"] for e in events] == ["fired", "resolved"]
        assert "tier_insufficient_data" in proc.stderr
        assert "tier_insufficient_data" not in proc.stdout

    def test_validate_json(self, tmp_path, config_file):
        proc = run_cli("validate", str(config_file), "--format", "json", cwd=tmp_path)

        assert proc.returncode == ExitCode.SUCCESS
        assert json.loads(proc.stdout)["slos"][0]["name"] == "checkout"
        assert "loaded_config" in proc.stderr

    def test_config_error_on_stderr(self, tmp_path):
        proc = run_cli("validate", str(tmp_path / "missing.yaml"), "--format", "json", cwd=tmp_path)

        assert proc.returncode == ExitCode.CONFIG_ERROR
        assert proc.stdout == ""
        assert "burnwatch: error:" in proc.stderr
