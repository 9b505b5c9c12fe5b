"""
tests/test_config.py — YAML Configuration Loader
==================================================
"""

from __future__ import annotations

import pytest

from commonweal.config import CommonwealConfig, load_config


def test_missing_file_yields_defaults(tmp_path):
    assert load_config(tmp_path / "nope.yaml") == CommonwealConfig()


def test_empty_file_yields_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == CommonwealConfig()


def test_values_are_read_and_coerced(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "community_name: Riverside\n"
        "token_ttl_hours: '12'\n"
        "default_page_size: 5\n"
        "max_page_size: 20\n"
        "log_level: debug\n",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.community_name == "Riverside"
    assert cfg.token_ttl_hours == 12
    assert cfg.default_page_size == 5
    assert cfg.max_page_size == 20
    assert cfg.log_level == "DEBUG"
    assert cfg.reset_token_ttl_minutes == 60


def test_env_var_selects_file(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("community_name: FromEnv\n", encoding="utf-8")
    monkeypatch.setenv("COMMONWEAL_CONFIG", str(path))
    assert load_config().community_name == "FromEnv"


@pytest.mark.parametrize(
    "body, match",
    [
        ("token_ttl_hours: soon\n", "Invalid value"),
        ("token_ttl_hours: 0\n", "token lifetimes must be positive"),
        ("default_page_size: 50\nmax_page_size: 10\n", "default_page_size"),
    ],
)
def test_bad_values_raise(tmp_path, body, match):
    path = tmp_path / "config.yaml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ValueError, match=match):
        load_config(path)
