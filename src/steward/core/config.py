"""Configuration loading (TOML, YAML policies, env vars, STEWARD.md)."""

from __future__ import annotations

import dataclasses
import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from steward.errors import ConfigError
from steward.permissions.policy import Policy
from steward.types.config import PermissionMode, RunConfig

logger = logging.getLogger(__name__)

# Load .env from the current directory (and parents); existing env vars win
load_dotenv()

CONFIG_DIR = ".steward"

ENV_MAP = {
    "anthropic": "ANTHROPIC_API_KEY",
}

_PRESETS = {
    "read_only": Policy.read_only,
    "standard": Policy.standard,
    "full": Policy.full,
}

_BOOL_FIELDS = ("file_read", "shell", "code_exec", "web", "install_packages")


def _user_config_path() -> Path:
    return Path.home() / CONFIG_DIR / "config.toml"


def _read_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    if model := os.environ.get("STEWARD_MODEL"):
        config["model"] = model
    if max_turns := os.environ.get("STEWARD_MAX_TURNS"):
        config["max_turns"] = max_turns
    if max_cost := os.environ.get("STEWARD_MAX_COST_USD"):
        config["max_cost_usd"] = max_cost
    if mode := os.environ.get("STEWARD_PERMISSION_MODE"):
        config["mode"] = mode

    return config


def load_toml_config(cwd: str | Path | None = None) -> dict[str, Any]:
    """Load ``.steward/config.toml`` from the project, else from the home dir.

    A file that fails to parse is skipped with a warning.
    """
    candidates = []
    if cwd:
        candidates.append(Path(cwd) / CONFIG_DIR / "config.toml")
    candidates.append(Path.cwd() / CONFIG_DIR / "config.toml")
    candidates.append(_user_config_path())

    for toml_path in candidates:
        if not toml_path.is_file():
            continue
        try:
            return _read_toml(toml_path)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", toml_path, exc)
    return {}


def load_steward_md(cwd: str | Path | None = None) -> str | None:
    """Load project instructions from STEWARD.md, if present."""
    base = Path(cwd) if cwd else Path.cwd()
    for name in ("STEWARD.md", f"{CONFIG_DIR}/STEWARD.md"):
        md_path = base / name
        if md_path.is_file():
            try:
                return md_path.read_text(encoding="utf-8")
            except OSError as exc:
                logger.warning("Could not read %s: %s", md_path, exc)
    return None


def resolve_api_key(provider: str, explicit_key: str | None = None) -> str | None:
    """API key for *provider*: explicit value, then env var, then user config."""
    if explicit_key:
        return explicit_key

    env_var = ENV_MAP.get(provider)
    if env_var and (val := os.environ.get(env_var)):
        return val

    config_path = _user_config_path()
    if config_path.is_file():
        try:
            data = _read_toml(config_path)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", config_path, exc)
            return None
        key = data.get("providers", {}).get(provider, {}).get("api_key")
        if key:
            return key
    return None


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "1", "on"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "0", "off"):
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _to_limit(name: str, value: Any, kind: type) -> Any:
    if value is None:
        return None
    try:
        number = kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return number


def _to_names(name: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list | tuple) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigError(f"{name} must be a list of tool names, got {value!r}")


def policy_from_mapping(data: Mapping[str, Any], *, working_dir: str | Path | None = None) -> Policy:
    """Build a :class:`Policy` from plain data (a parsed policy file).

    An optional ``preset`` key (``read_only``, ``standard`` or ``full``)
    supplies the base; the remaining keys override it field by field.
    ``can_use_tool`` cannot come from data.

    Raises
    ------
    ConfigError
        Unknown keys, unknown presets or modes, and ill-typed values.
    """
    data = dict(data)
    preset = data.pop("preset", None)
    if preset is None:
        base = Policy()
    elif preset in _PRESETS:
        base = Policy.standard(working_dir) if preset == "standard" else _PRESETS[preset]()
    else:
        raise ConfigError(f"Unknown policy preset {preset!r}; expected one of {sorted(_PRESETS)}")

    known = {f.name for f in dataclasses.fields(Policy)} - {"can_use_tool"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown policy keys: {', '.join(unknown)}")

    changes: dict[str, Any] = {}
    for key, value in data.items():
        if key == "mode":
            try:
                changes["mode"] = PermissionMode(value)
            except ValueError as exc:
                modes = [m.value for m in PermissionMode]
                raise ConfigError(f"Unknown permission mode {value!r}; expected one of {modes}") from exc
        elif key in _BOOL_FIELDS:
            changes[key] = _to_bool(key, value)
        elif key == "file_write":
            if isinstance(value, str) and value.strip().lower() not in ("true", "false"):
                path = Path(value).expanduser()
                if not path.is_absolute() and working_dir is not None:
                    path = Path(working_dir) / path
                changes[key] = str(path)
            else:
                changes[key] = _to_bool(key, value)
        elif key == "max_turns":
            changes[key] = _to_limit(key, value, int)
        elif key == "max_cost_usd":
            changes[key] = _to_limit(key, value, float)
        elif key == "allow_tools":
            changes[key] = None if value is None else _to_names(key, value)
        elif key == "deny_tools":
            changes[key] = _to_names(key, value)
        elif key == "permission_prompt_tool":
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"permission_prompt_tool must be a string, got {value!r}")
            changes[key] = value

    return dataclasses.replace(base, **changes)


def load_policy_file(path: str | Path, *, working_dir: str | Path | None = None) -> Policy:
    """Load a policy from a YAML (``.yaml``/``.yml``) or TOML file.

    A top-level ``policy`` table is unwrapped if present.
    """
    path = Path(path)
    try:
        if path.suffix in (".yaml", ".yml"):
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        elif path.suffix == ".toml":
            data = _read_toml(path)
        else:
            raise ConfigError(f"Unsupported policy file type: {path.suffix or path.name}")
    except (OSError, yaml.YAMLError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Failed to read policy file %s: %s", path, exc)
        raise ConfigError(f"Failed to read policy file {path}: {exc}") from exc

    if not isinstance(data, Mapping):
        raise ConfigError(f"Policy file {path} must contain a mapping")
    if "policy" in data and isinstance(data["policy"], Mapping):
        data = data["policy"]
    return policy_from_mapping(data, working_dir=working_dir)


def apply_env_overrides(policy: Policy, env: Mapping[str, str] | None = None) -> Policy:
    """Apply ``STEWARD_MAX_TURNS``, ``STEWARD_MAX_COST_USD`` and
    ``STEWARD_PERMISSION_MODE`` on top of *policy*."""
    env = os.environ if env is None else env
    overrides: dict[str, Any] = {}
    if "STEWARD_MAX_TURNS" in env:
        overrides["max_turns"] = env["STEWARD_MAX_TURNS"]
    if "STEWARD_MAX_COST_USD" in env:
        overrides["max_cost_usd"] = env["STEWARD_MAX_COST_USD"]
    if "STEWARD_PERMISSION_MODE" in env:
        overrides["mode"] = env["STEWARD_PERMISSION_MODE"]
    if not overrides:
        return policy

    validated = policy_from_mapping(overrides)
    return dataclasses.replace(policy, **{key: getattr(validated, key) for key in overrides})


def run_config_from_mapping(data: Mapping[str, Any]) -> RunConfig:
    """Build a :class:`RunConfig` from the ``[run]`` table of a config file."""
    known = {f.name for f in dataclasses.fields(RunConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown run settings: {', '.join(unknown)}")
    try:
        return RunConfig(**data)
    except TypeError as exc:
        raise ConfigError(f"Invalid run settings: {exc}") from exc
