"""
tests/test_config.py — YAML Configuration Loader
=================================================
"""

from __future__ import annotations

import pytest

from questline.config import load_config

VALID = """\
service_name: Questline
default_page_size: 10
max_page_size: 100
leaderboard_context_size: 2
"""


def test_load_valid(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(VALID, encoding="utf-8")

    cfg = load_config(path)
    assert cfg.service_name == "Questline"
    assert cfg.max_page_size == 100
    assert cfg.api_port == 8000


def test_env_var_fallback(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text(VALID + "api_port: 9100\n", encoding="utf-8")
    monkeypatch.setenv("QUESTLINE_CONFIG", str(path))

    assert load_config().api_port == 9100


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="config.yaml.example"):
        load_config(tmp_path / "nope.yaml")


def test_missing_key(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("service_name: Questline\n", encoding="utf-8")
    with pytest.raises(KeyError):
        load_config(path)


def test_page_size_above_max(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(VALID.replace("max_page_size: 100", "max_page_size: 5"), encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)
