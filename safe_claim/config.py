"""
Configuration — Load and merge config from YAML files.

Looks for `config.yaml` in the project root. The tasks base directory can
also be set with the SAFE_CLAIM_BASE_DIR environment variable, which wins
over the file.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import yaml

BASE_DIR_ENV = "SAFE_CLAIM_BASE_DIR"


def load_config(project_root: str | Path | None = None, fail_on_error: bool = False) -> dict[str, Any]:
    """
    Load configuration from config.yaml in the project root.

    Args:
        project_root:  Path to the project root. Defaults to cwd.
        fail_on_error: Exit with status 2 on a bad config instead of falling
                       back to defaults (parse errors) or raising ValueError
                       (invalid values). The CLI sets this.

    Returns:
        Merged configuration dict.
    """
    if project_root is None:
        project_root = Path.cwd()
    else:
        project_root = Path(project_root)

    def _handle_error(msg: str):
        if fail_on_error:
            print(msg, file=sys.stderr)
            raise SystemExit(2)
        raise ValueError(msg)

    config = _defaults()
    config_path = project_root / "config.yaml"

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            verb = "parse" if isinstance(e, yaml.YAMLError) else "read"
            msg = f"Failed to {verb} config.yaml: {e}"
            if fail_on_error:
                print(msg, file=sys.stderr)
                raise SystemExit(2)
            print(f"Warning: {msg}; using defaults.", file=sys.stderr)
            user_config = {}

        if not isinstance(user_config, dict):
            _handle_error(
                f"Invalid config.yaml: expected a mapping, got {type(user_config).__name__}"
            )
        _deep_merge(config, user_config)

    # Basic type validation / coercion
    for section in ("tasks", "claim", "logging"):
        if not isinstance(config.get(section), dict):
            _handle_error(f"Invalid config section '{section}': expected a mapping")

    tasks = config["tasks"]
    env_base_dir = os.environ.get(BASE_DIR_ENV)
    if env_base_dir:
        tasks["base_dir"] = env_base_dir
    for key in ("base_dir", "task_suffix", "lock_name"):
        val = tasks.get(key)
        if not isinstance(val, str) or not val:
            _handle_error(f"Invalid value for tasks.{key}: expected non-empty string, got {val!r}")

    claim = config["claim"]
    timeout = claim.get("lock_timeout_seconds")
    if timeout is not None:
        if isinstance(timeout, str):
            try:
                timeout = float(timeout)
            except ValueError:
                _handle_error(
                    f"Invalid value for claim.lock_timeout_seconds: expected number, got '{timeout}'"
                )
        elif isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            _handle_error(
                f"Invalid type for claim.lock_timeout_seconds: expected number, got {type(timeout).__name__}"
            )
        if timeout <= 0:
            _handle_error(f"claim.lock_timeout_seconds must be positive (got {timeout})")
        claim["lock_timeout_seconds"] = float(timeout)

    strict = claim.get("strict_team_resolution")
    if not isinstance(strict, bool):
        _handle_error(
            f"Invalid type for claim.strict_team_resolution: expected bool, got {type(strict).__name__}"
        )

    return config


def resolve_base_dir(config: dict[str, Any]) -> Path:
    """Return the tasks base directory with ``~`` expanded.

    Falls back to /tmp when no home directory can be determined.
    """
    raw = config.get("tasks", {}).get("base_dir", "~/.claude/tasks")
    if raw == "~" or raw.startswith("~/"):
        try:
            home = Path.home()
        except RuntimeError:
            home = Path("/tmp")
        raw = str(home) + raw[1:]
    return Path(raw)


def _defaults() -> dict[str, Any]:
    """Return the default configuration."""
    return {
        "tasks": {
            "base_dir": "~/.claude/tasks",
            "task_suffix": ".json",
            "lock_name": ".lock",
        },
        "claim": {
            "lock_timeout_seconds": None,
            "strict_team_resolution": False,
        },
        "logging": {
            "level": "WARNING",
        },
    }


def _deep_merge(base: dict, override: dict) -> None:
    """Recursively merge `override` into `base` in place."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
