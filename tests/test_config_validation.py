"""Tests for flockpilot.config — loading, defaults and validation."""

import copy
import logging

import pytest

from flockpilot.config import (
    DEFAULT_CONFIG,
    load_config,
    log_validation_result,
    merge_defaults,
    resolve_identity,
    validate_config,
)


def _make_config(**sections):
    cfg = merge_defaults(None)
    for section, values in sections.items():
        if isinstance(values, dict) and isinstance(cfg.get(section), dict):
            cfg[section].update(values)
        else:
            cfg[section] = values
    return cfg


# ---------------------------------------------------------------------------
# Defaults and merging
# ---------------------------------------------------------------------------


class TestMergeDefaults:
    def test_defaults_are_valid(self):
        ok, errors = validate_config(merge_defaults(None))
        assert ok is True
        assert errors == []

    def test_partial_section_keeps_other_defaults(self):
        cfg = merge_defaults({"flock": {"fleet_size": 6}})
        assert cfg["flock"]["fleet_size"] == 6
        assert cfg["flock"]["interaction_radius"] == 2.0

    def test_default_config_not_mutated(self):
        before = copy.deepcopy(DEFAULT_CONFIG)
        cfg = merge_defaults({"control": {"k_p": 9.0}})
        cfg["flock"]["fleet_size"] = 99
        assert DEFAULT_CONFIG == before

    def test_lists_are_replaced(self):
        cfg = merge_defaults({"drivers": [{"protocol": "simulation"}]})
        assert cfg["drivers"] == [{"protocol": "simulation"}]


class TestLoadConfig:
    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "rover.yaml"
        path.write_text("metadata:\n  robot_name: rover7\nflock:\n  fleet_size: 5\n")
        cfg = load_config(str(path))
        assert cfg["metadata"]["robot_name"] == "rover7"
        assert cfg["flock"]["fleet_size"] == 5
        assert cfg["control"]["k_p"] == 0.1

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == merge_defaults(None)

    def test_missing_file_exits(self, tmp_path):
        with pytest.raises(SystemExit):
            load_config(str(tmp_path / "nope.yaml"))

    def test_non_mapping_exits(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(SystemExit):
            load_config(str(path))


class TestResolveIdentity:
    def test_override_wins(self):
        cfg = _make_config(metadata={"robot_name": "rover1"})
        assert resolve_identity(cfg, "rover9") == "rover9"

    def test_robot_name(self):
        cfg = _make_config(metadata={"robot_name": "rover1"})
        assert resolve_identity(cfg) == "rover1"

    def test_host_name_fallback(self, monkeypatch):
        monkeypatch.setattr("flockpilot.config.socket.gethostname", lambda: "jetson-04")
        assert resolve_identity(merge_defaults(None)) == "jetson-04"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidateConfig:
    def test_non_dict(self):
        ok, errors = validate_config(["not", "a", "dict"])
        assert ok is False
        assert len(errors) == 1

    @pytest.mark.parametrize("section", ["flock", "control", "watchdog", "transport"])
    def test_section_must_be_mapping(self, section):
        ok, errors = validate_config(_make_config(**{section: "oops"}))
        assert ok is False
        assert any(section in e for e in errors)

    @pytest.mark.parametrize("value", [0, -1, 2.5, True, "3", None])
    def test_bad_fleet_size(self, value):
        ok, errors = validate_config(_make_config(flock={"fleet_size": value}))
        assert ok is False
        assert any("fleet_size" in e for e in errors)

    @pytest.mark.parametrize(
        "section, key",
        [
            ("flock", "interaction_radius"),
            ("control", "tick_hz"),
            ("watchdog", "timeout_s"),
        ],
    )
    def test_positive_fields(self, section, key):
        ok, errors = validate_config(_make_config(**{section: {key: 0}}))
        assert ok is False
        assert any(f"{section}.{key}" in e for e in errors)

    @pytest.mark.parametrize("key", ["separation_weight", "cohesion_weight", "alignment_weight"])
    def test_negative_weight(self, key):
        ok, errors = validate_config(_make_config(flock={key: -0.1}))
        assert ok is False
        assert any(key in e for e in errors)

    def test_zero_weights_allowed(self):
        cfg = _make_config(
            flock={"separation_weight": 0.0, "cohesion_weight": 0.0, "alignment_weight": 0.0}
        )
        assert validate_config(cfg)[0] is True

    def test_separation_exceeds_radius(self):
        cfg = _make_config(flock={"interaction_radius": 1.0, "separation_distance": 1.5})
        ok, errors = validate_config(cfg)
        assert ok is False
        assert any("separation_distance" in e for e in errors)

    @pytest.mark.parametrize("value", [0, -5, "soon"])
    def test_bad_stale_after(self, value):
        ok, _ = validate_config(_make_config(flock={"stale_after_s": value}))
        assert ok is False

    def test_stale_after_positive_ok(self):
        assert validate_config(_make_config(flock={"stale_after_s": 3.0}))[0] is True

    def test_empty_drivers(self):
        ok, errors = validate_config(_make_config(drivers=[]))
        assert ok is False
        assert any("drivers" in e for e in errors)

    def test_unknown_transport(self):
        ok, errors = validate_config(_make_config(transport={"type": "zigbee"}))
        assert ok is False
        assert any("transport.type" in e for e in errors)

    @pytest.mark.parametrize("value", [1.0, 1.5, -0.1, "often"])
    def test_bad_loss_prob(self, value):
        ok, errors = validate_config(_make_config(simulation={"loss_prob": value}))
        assert ok is False
        assert any("simulation.loss_prob" in e for e in errors)

    @pytest.mark.parametrize("value", [0.0, 0.5, 0.99])
    def test_loss_prob_in_range_ok(self, value):
        assert validate_config(_make_config(simulation={"loss_prob": value}))[0] is True

    def test_collects_all_errors(self):
        cfg = _make_config(
            flock={"fleet_size": 0, "alignment_weight": -1.0},
            transport={"type": "carrier-pigeon"},
        )
        _, errors = validate_config(cfg)
        assert len(errors) == 3


class TestLogValidationResult:
    def test_valid_returns_true(self):
        assert log_validation_result(merge_defaults(None)) is True

    def test_invalid_logs_each_error(self, caplog):
        cfg = _make_config(flock={"fleet_size": 0}, drivers=[])
        with caplog.at_level(logging.ERROR, logger="FlockPilot.Config"):
            assert log_validation_result(cfg) is False
        assert len([r for r in caplog.records if r.levelno == logging.ERROR]) == 2
