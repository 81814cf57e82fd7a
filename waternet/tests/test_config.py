"""Tests for configuration loading."""

import logging

import pytest

from waternet import AnalysisConfig, InvalidArgumentError, configure_logging, load_config


def test_defaults():
    cfg = AnalysisConfig()
    assert cfg.earth_radius_km == 6371.0
    assert cfg.tolerance == 1e-9
    assert cfg.log_level == "WARNING"


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "analysis.yml"
    path.write_text("earth_radius_km: 6378.1\ntolerance: 0.001\nlog_level: debug\n", encoding="utf-8")
    cfg = load_config(str(path))
    assert cfg.earth_radius_km == 6378.1
    assert cfg.tolerance == 0.001
    configure_logging(cfg)
    try:
        assert logging.getLogger("waternet").level == logging.DEBUG
    finally:
        logging.getLogger("waternet").setLevel(logging.NOTSET)


def test_empty_file_yields_defaults(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert load_config(str(path)) == AnalysisConfig()


def test_unknown_keys_are_rejected(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("tolerence: 0.1\n", encoding="utf-8")
    with pytest.raises(InvalidArgumentError, match="tolerence"):
        load_config(str(path))


def test_non_mapping_document_is_rejected(tmp_path):
    path = tmp_path / "list.yml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(InvalidArgumentError):
        load_config(str(path))


@pytest.mark.parametrize(
    "kwargs",
    [{"earth_radius_km": 0}, {"tolerance": -1.0}, {"log_level": "LOUD"}],
)
def test_invalid_values(kwargs):
    with pytest.raises(InvalidArgumentError):
        AnalysisConfig(**kwargs)
