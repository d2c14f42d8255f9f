"""Configuration file loading and merging for grc.

Reads TOML config from ~/.config/grc/config.toml (global) and
<base_dir>/grc.toml (project). Precedence: CLI > project > global > defaults.
"""

import argparse
import os
import sys
import tomllib
from pathlib import Path
from typing import Any

from .report import ConfigError  # noqa: F401  re-exported

_UNSET = object()  # Sentinel for "not set by CLI"


# --- Schema ---

CONFIG_KEYS: dict[str, type | tuple[type, ...]] = {
    "provider": str,
    "model": str,
    "light_model": str,
    "api_key": str,
    "base_url": str,
    "experimental": bool,
    "max_iterations": int,
    "checkpoint_interval": int,
    "exploration_floor": int,
    "max_output_tokens": int,
    "temperature": (int, float),
    "shell_timeout": int,
    "found_files_cap": int,
    "read_files_cap": int,
    "failed_files_cap": int,
    "recent_results_cap": int,
    "no_memory": bool,
    "memory_dir": str,
    "color": bool,
    "quiet": bool,
}

_NON_NEGATIVE_KEYS = {
    "checkpoint_interval",
    "exploration_floor",
    "found_files_cap",
    "read_files_cap",
    "failed_files_cap",
    "recent_results_cap",
}

_POSITIVE_KEYS = {"max_iterations", "max_output_tokens", "shell_timeout"}

PROVIDERS = ("groq", "openrouter")

# Argparse dest -> hardcoded default
_ARGPARSE_DEFAULTS: dict[str, Any] = {
    "provider": "groq",
    "model": None,
    "light_model": None,
    "api_key": None,
    "base_url": None,
    "experimental": False,
    "max_iterations": 25,
    "checkpoint_interval": 5,
    "exploration_floor": 3,
    "max_output_tokens": 4096,
    "temperature": None,
    "shell_timeout": 120,
    "found_files_cap": 15,
    "read_files_cap": 10,
    "failed_files_cap": 5,
    "recent_results_cap": 3,
    "no_memory": False,
    "memory_dir": None,
    "color": False,
    "no_color": False,
    "quiet": False,
}


# --- Internal helpers ---


def global_config_dir() -> Path:
    """Return the global config directory, respecting XDG_CONFIG_HOME."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "grc"
    return Path.home() / ".config" / "grc"


def _type_name(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def _validate_config(config: dict, source: str) -> None:
    """Validate value types and ranges in a parsed config dict.

    Raises ConfigError for type mismatches. Prints warnings for unknown keys.
    """
    for key, value in config.items():
        if key not in CONFIG_KEYS:
            print(f"warning: {source}: unknown config key {key!r}", file=sys.stderr)
            continue

        expected = CONFIG_KEYS[key]
        # bool is a subclass of int; reject it for numeric fields.
        if isinstance(value, bool) and expected is not bool:
            raise ConfigError(
                f"{source}: {key!r} expected {_type_name(expected)}, got bool"
            )
        if not isinstance(value, expected):
            raise ConfigError(
                f"{source}: {key!r} expected {_type_name(expected)}, got {type(value).__name__}"
            )
        if key in _POSITIVE_KEYS and value < 1:
            raise ConfigError(f"{source}: {key!r} must be at least 1, got {value}")
        if key in _NON_NEGATIVE_KEYS and value < 0:
            raise ConfigError(f"{source}: {key!r} must not be negative, got {value}")

    if "provider" in config and config["provider"] not in PROVIDERS:
        raise ConfigError(
            f"{source}: 'provider' must be one of {', '.join(PROVIDERS)}, "
            f"got {config['provider']!r}"
        )


def _resolve_paths(config: dict, config_dir: Path) -> None:
    """Resolve a relative memory_dir against the config file's directory."""
    if "memory_dir" in config:
        expanded = Path(config["memory_dir"]).expanduser()
        if expanded.is_absolute():
            config["memory_dir"] = str(expanded)
        else:
            config["memory_dir"] = str(config_dir / expanded)


def _check_api_key_in_git(config: dict, config_path: Path) -> None:
    """Warn if api_key is set in a project config inside a git repo."""
    if "api_key" not in config:
        return
    parent = config_path.parent
    while parent != parent.parent:
        if (parent / ".git").exists():
            print(
                f"warning: {config_path}: 'api_key' in a git-tracked project config "
                f"may be committed accidentally. Consider using an environment variable.",
                file=sys.stderr,
            )
            return
        parent = parent.parent


def _load_single(path: Path, label: str) -> dict:
    """Load and validate a single TOML config file. Returns empty dict if missing."""
    if not path.is_file():
        return {}
    try:
        with open(path, "rb") as f:
            config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{label}: invalid TOML: {e}") from e

    _validate_config(config, label)
    return {k: v for k, v in config.items() if k in CONFIG_KEYS}


# --- Public API ---


def load_config(base_dir: Path) -> dict:
    """Load and merge global + project config.

    Returns a flat dict holding only keys that were actually set in config
    files; defaults are applied later by ``apply_config_to_args``.
    """
    global_path = global_config_dir() / "config.toml"
    global_config = _load_single(global_path, str(global_path))
    _resolve_paths(global_config, global_path.parent)

    project_path = Path(base_dir).resolve() / "grc.toml"
    project_config = _load_single(project_path, str(project_path))
    if project_config:
        _check_api_key_in_git(project_config, project_path)
        _resolve_paths(project_config, project_path.parent)

    return {**global_config, **project_config}


def apply_config_to_args(args: argparse.Namespace, config: dict) -> None:
    """Fill argparse values the CLI left unset, then apply hardcoded defaults."""

    def _is_unset(dest: str) -> bool:
        return getattr(args, dest, _UNSET) is _UNSET

    # A single config key controls the mutually exclusive color pair
    if "color" in config:
        color_val = config["color"]
        if _is_unset("color") and _is_unset("no_color"):
            args.color = color_val
            args.no_color = not color_val

    for key, value in config.items():
        if key == "color":
            continue
        if _is_unset(key):
            setattr(args, key, value)

    for dest, default in _ARGPARSE_DEFAULTS.items():
        if _is_unset(dest):
            setattr(args, dest, default)


def config_to_session_kwargs(config: dict) -> dict:
    """Convert a config dict to Session constructor kwargs.

    ``quiet`` becomes ``verbose`` and ``no_memory`` becomes ``memory``
    (both inverted); ``color`` is a CLI concern and is dropped.
    """
    invert = {"quiet": "verbose", "no_memory": "memory"}
    kwargs = {}
    for key, value in config.items():
        if key == "color":
            continue
        if key in invert:
            kwargs[invert[key]] = not value
        else:
            kwargs[key] = value
    return kwargs


def generate_config(project: bool = False) -> str:
    """Return a commented-out template config string."""
    lines = [
        "# grc configuration file",
        f"# {'Project' if project else 'Global'} config: "
        f"{'<project>/grc.toml' if project else '~/.config/grc/config.toml'}",
        "#",
        "# CLI flags override these values. Only uncomment what you need.",
        "",
        "# --- Provider / models ---",
        '# provider = "groq"               # "groq" | "openrouter"',
        '# model = "llama-3.3-70b-versatile"     # heavy tier',
        '# light_model = "llama-3.1-8b-instant"  # light tier',
        "# experimental = false            # use the Llama 4 model pair",
        '# api_key = "gsk_..."             # prefer GROQ_API_KEY / OPENROUTER_API_KEY',
        '# base_url = "https://..."',
        "",
        "# --- Generation parameters ---",
        "# max_output_tokens = 4096",
        "# temperature = 0.2",
        "",
        "# --- Agent loop ---",
        "# max_iterations = 25",
        "# checkpoint_interval = 5         # 0 disables checkpoints",
        "# exploration_floor = 3",
        "# shell_timeout = 120",
        "",
        "# --- Compressed view caps ---",
        "# found_files_cap = 15",
        "# read_files_cap = 10",
        "# failed_files_cap = 5",
        "# recent_results_cap = 3",
        "",
        "# --- Session memory ---",
        "# no_memory = false",
        '# memory_dir = "~/.grc/memory"',
        "",
        "# --- UI ---",
        "# color = true       # true = force color, false = force no-color, absent = auto",
        "# quiet = false",
        "",
    ]
    return "\n".join(lines)
