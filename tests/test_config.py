"""Tests for grc.config: TOML config loading, merging, and CLI integration."""

import argparse

import pytest

from grc.config import (
    _ARGPARSE_DEFAULTS,
    _UNSET,
    ConfigError,
    apply_config_to_args,
    config_to_session_kwargs,
    generate_config,
    global_config_dir,
    load_config,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_toml(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _make_args(**overrides):
    """Build a namespace mimicking build_parser() with _UNSET sentinels."""
    defaults = {dest: _UNSET for dest in _ARGPARSE_DEFAULTS}
    defaults.update(overrides)
    return argparse.Namespace(**defaults)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    return tmp_path


# ===========================================================================
# Config loading
# ===========================================================================


class TestLoadConfig:
    def test_missing_files_returns_empty(self, isolated):
        assert load_config(isolated / "project") == {}

    def test_global_dir_respects_xdg(self, isolated):
        assert global_config_dir() == isolated / "xdg" / "grc"

    def test_global_only(self, isolated):
        _write_toml(isolated / "xdg" / "grc" / "config.toml", 'provider = "openrouter"\n')
        assert load_config(isolated / "project")["provider"] == "openrouter"

    def test_project_overrides_global(self, isolated):
        _write_toml(isolated / "xdg" / "grc" / "config.toml", "max_iterations = 10\nexperimental = true\n")
        _write_toml(isolated / "project" / "grc.toml", "max_iterations = 40\n")
        config = load_config(isolated / "project")
        assert config["max_iterations"] == 40
        assert config["experimental"] is True

    def test_unknown_key_warns_and_is_dropped(self, isolated, capsys):
        _write_toml(isolated / "project" / "grc.toml", "bogus = 1\nquiet = true\n")
        config = load_config(isolated / "project")
        assert config == {"quiet": True}
        assert "unknown config key 'bogus'" in capsys.readouterr().err

    def test_wrong_type_raises(self, isolated):
        _write_toml(isolated / "project" / "grc.toml", 'max_iterations = "lots"\n')
        with pytest.raises(ConfigError, match="expected int"):
            load_config(isolated / "project")

    def test_bool_rejected_for_int(self, isolated):
        _write_toml(isolated / "project" / "grc.toml", "checkpoint_interval = true\n")
        with pytest.raises(ConfigError, match="got bool"):
            load_config(isolated / "project")

    def test_temperature_accepts_int(self, isolated):
        _write_toml(isolated / "project" / "grc.toml", "temperature = 1\n")
        assert load_config(isolated / "project")["temperature"] == 1

    def test_range_checks(self, isolated):
        _write_toml(isolated / "project" / "grc.toml", "max_iterations = 0\n")
        with pytest.raises(ConfigError, match="at least 1"):
            load_config(isolated / "project")
        _write_toml(isolated / "project" / "grc.toml", "read_files_cap = -1\n")
        with pytest.raises(ConfigError, match="negative"):
            load_config(isolated / "project")

    def test_unknown_provider(self, isolated):
        _write_toml(isolated / "project" / "grc.toml", 'provider = "lmstudio"\n')
        with pytest.raises(ConfigError, match="provider"):
            load_config(isolated / "project")

    def test_invalid_toml(self, isolated):
        _write_toml(isolated / "project" / "grc.toml", "max_iterations = \n")
        with pytest.raises(ConfigError, match="invalid TOML"):
            load_config(isolated / "project")

    def test_relative_memory_dir_resolved(self, isolated):
        _write_toml(isolated / "project" / "grc.toml", 'memory_dir = "state/memory"\n')
        config = load_config(isolated / "project")
        assert config["memory_dir"] == str((isolated / "project").resolve() / "state" / "memory")

    def test_api_key_in_git_project_warns(self, isolated, capsys):
        (isolated / "project" / ".git").mkdir(parents=True)
        _write_toml(isolated / "project" / "grc.toml", 'api_key = "gsk_x"\n')
        load_config(isolated / "project")
        assert "committed accidentally" in capsys.readouterr().err


# ===========================================================================
# Merging into argparse
# ===========================================================================


class TestApplyConfig:
    def test_defaults_fill_unset(self):
        args = _make_args()
        apply_config_to_args(args, {})
        assert args.provider == "groq"
        assert args.max_iterations == 25
        assert args.checkpoint_interval == 5
        assert args.exploration_floor == 3
        assert args.found_files_cap == 15

    def test_config_fills_unset(self):
        args = _make_args()
        apply_config_to_args(args, {"max_iterations": 9})
        assert args.max_iterations == 9

    def test_cli_beats_config(self):
        args = _make_args(max_iterations=3)
        apply_config_to_args(args, {"max_iterations": 9})
        assert args.max_iterations == 3

    def test_color_key_sets_pair(self):
        args = _make_args()
        apply_config_to_args(args, {"color": False})
        assert args.color is False
        assert args.no_color is True

    def test_color_cli_flag_wins(self):
        args = _make_args(color=True)
        apply_config_to_args(args, {"color": False})
        assert args.color is True


def test_config_to_session_kwargs():
    kwargs = config_to_session_kwargs({"quiet": True, "no_memory": True, "color": True, "model": "m"})
    assert kwargs == {"verbose": False, "memory": False, "model": "m"}


def test_generate_config_is_all_comments():
    for project in (False, True):
        text = generate_config(project=project)
        assert all(not line or line.startswith("#") for line in text.splitlines())
    assert "grc.toml" in generate_config(project=True)
