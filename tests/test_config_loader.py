"""Tests for config/loader.py and config/settings.py."""

from datetime import timedelta
from pathlib import Path

import pytest
import yaml
from burnwatch.config.loader import (
    get_config_path,
    load_slo_config,
    load_slo_dict,
    parse_slo_dict,
    parse_tier,
)
from burnwatch.config.settings import Settings
from burnwatch.core.errors import ConfigurationError
from burnwatch.slos.models import DEFAULT_TIERS


def critical_tier(**overrides):
    tier = {
        "severity": "critical",
        "short_window": "1h",
        "long_window": "6h",
        "threshold": 14.4,
        "for": "5m",
    }
    tier.update(overrides)
    return tier


def write_config(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "burnwatch.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestParseTier:
    """Tests for parse_tier."""

    def test_parse(self):
        tier = parse_tier(critical_tier())
        assert tier.short_window == timedelta(hours=1)
        assert tier.long_window == timedelta(hours=6)
        assert tier.threshold == 14.4
        assert tier.for_duration == timedelta(minutes=5)
        assert tier.severity == "critical"

    def test_for_defaults_to_zero(self):
        data = critical_tier()
        del data["for"]
        assert parse_tier(data).for_duration == timedelta(0)

    def test_missing_field(self):
        data = critical_tier()
        del data["threshold"]
        with pytest.raises(ConfigurationError, match="threshold"):
            parse_tier(data)

    def test_bad_duration(self):
        with pytest.raises(ConfigurationError):
            parse_tier(critical_tier(short_window="soon"))

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            parse_tier(["1h", "6h"])


class TestParseSLODict:
    """Tests for parse_slo_dict."""

    def test_default_tiers(self):
        slo = parse_slo_dict({"name": "checkout", "target": 0.999})
        assert slo.tiers == DEFAULT_TIERS
        assert slo.period == timedelta(days=30)

    def test_full(self):
        slo = parse_slo_dict(
            {
                "name": "checkout",
                "target": 0.995,
                "period": "28d",
                "description": "Checkout requests",
                "labels": {"team": "payments"},
                "tiers": [critical_tier()],
            }
        )
        assert slo.target == 0.995
        assert slo.period == timedelta(days=28)
        assert slo.labels == {"team": "payments"}
        assert len(slo.tiers) == 1

    def test_missing_name(self):
        with pytest.raises(ConfigurationError, match="name"):
            parse_slo_dict({"target": 0.99})

    def test_missing_target(self):
        with pytest.raises(ConfigurationError, match="target"):
            parse_slo_dict({"name": "checkout"})

    def test_tiers_not_list(self):
        with pytest.raises(ConfigurationError):
            parse_slo_dict({"name": "checkout", "target": 0.99, "tiers": {"a": 1}})

    def test_labels_not_mapping(self):
        with pytest.raises(ConfigurationError, match="labels"):
            parse_slo_dict({"name": "checkout", "target": 0.99, "labels": ["team", "payments"]})

    def test_labels_list_rejects_only_that_slo(self):
        result = load_slo_dict(
            {
                "slos": [
                    {"name": "broken", "target": 0.99, "labels": ["team"]},
                    {"name": "checkout", "target": 0.99},
                ]
            }
        )
        assert "broken" in result.errors
        assert [s.name for s in result.slos] == ["checkout"]


class TestLoadSLODict:
    """Tests for load_slo_dict validation."""

    def test_valid(self):
        result = load_slo_dict({"slos": [{"name": "checkout", "target": 0.999}]})
        assert result.ok
        assert [s.name for s in result.slos] == ["checkout"]

    @pytest.mark.parametrize(
        "tier",
        [
            critical_tier(short_window="6h"),
            critical_tier(short_window="12h"),
            critical_tier(threshold=0),
            critical_tier(threshold=-2),
        ],
    )
    def test_invalid_tier_rejects_only_that_slo(self, tier):
        result = load_slo_dict(
            {
                "slos": [
                    {"name": "broken", "target": 0.999, "tiers": [tier]},
                    {"name": "checkout", "target": 0.999},
                ]
            }
        )
        assert not result.ok
        assert "broken" in result.errors
        assert [s.name for s in result.slos] == ["checkout"]

    def test_target_above_one(self):
        result = load_slo_dict({"slos": [{"name": "checkout", "target": 1.5}]})
        assert result.slos == []
        assert "Invalid target" in result.errors["checkout"][0]

    def test_full_target_warns(self):
        result = load_slo_dict({"slos": [{"name": "checkout", "target": 1.0}]})
        assert result.ok
        assert "checkout" in result.warnings
        assert len(result.slos) == 1

    def test_duplicate_names(self):
        result = load_slo_dict(
            {
                "slos": [
                    {"name": "checkout", "target": 0.999},
                    {"name": "checkout", "target": 0.99},
                ]
            }
        )
        assert len(result.slos) == 1
        assert "duplicate SLO name: checkout" in result.errors["checkout"]

    def test_unnamed_entry_reported_by_index(self):
        result = load_slo_dict({"slos": [{"target": 0.99}]})
        assert "slos[0]" in result.errors

    def test_strict_raises(self):
        with pytest.raises(ConfigurationError):
            load_slo_dict(
                {"slos": [{"name": "checkout", "target": 0.999, "tiers": [critical_tier(threshold=0)]}]},
                strict=True,
            )

    def test_malformed_document(self):
        with pytest.raises(ConfigurationError):
            load_slo_dict({"objectives": []})

    def test_to_dict(self):
        data = load_slo_dict({"slos": [{"name": "checkout", "target": 0.999}]}).to_dict()
        assert data["slos"][0]["name"] == "checkout"
        assert data["errors"] == {}


class TestLoadSLOConfig:
    """Tests for loading from files."""

    def test_load_file(self, tmp_path):
        path = write_config(
            tmp_path,
            {"slos": [{"name": "checkout", "target": 0.999, "tiers": [critical_tier()]}]},
        )
        result = load_slo_config(path)
        assert result.slos[0].tiers[0].threshold == 14.4

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_slo_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "burnwatch.yaml"
        path.write_text("slos: [unclosed")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_slo_config(path)

    def test_config_path_from_cwd(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, {"slos": []})
        monkeypatch.chdir(tmp_path)
        assert get_config_path() == path

    def test_explicit_missing_path(self, tmp_path):
        assert get_config_path(tmp_path / "nope.yaml") is None


class TestSettings:
    """Tests for environment-based settings."""

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        settings = Settings()
        assert settings.evaluation_interval_seconds == 60.0
        assert settings.bucket_seconds == 60
        assert settings.duplicate_policy == "overwrite"
        assert settings.slack_webhook_url is None

    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("BURNWATCH_EVALUATION_INTERVAL_SECONDS", "30")
        monkeypatch.setenv("BURNWATCH_SLACK_WEBHOOK_URL", "https://hooks.slack.com/x")
        settings = Settings()
        assert settings.evaluation_interval_seconds == 30.0
        assert settings.slack_webhook_url == "https://hooks.slack.com/x"
