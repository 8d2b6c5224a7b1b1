"""Configuration loading and management for lint-overlay.

Configuration sources are merged in priority order:
    1. Defaults (defined in OverlayConfig)
    2. Global config (~/.lint-overlay.toml)
    3. Project config (./lint-overlay.toml)
    4. Explicit config file (--config)
    5. Environment variables (LINT_OVERLAY_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(ts=True, tsconfig_path="tsconfig.app.json")
    >>> config.ts
    True
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError, InvalidPathError

ENV_PREFIX = "LINT_OVERLAY_"


@dataclass(frozen=True)
class OverlayConfig:
    """Startup configuration for the overlay server.

    Attributes:
        Analysis scope:
            project_root: Project directory analyzers run in
            root_dir: Directory (relative to project_root) whose files are linted
            extensions: File extensions that trigger a lint run

        Analyzers:
            eslint: Run the ESLint batch analyzer
            ts: Run the TypeScript watch analyzer (opt-in)
            tsconfig_path: Explicit tsconfig, absolute or relative to project_root
            eslint_command: Command overriding executable discovery for ESLint
            tsc_command: Command overriding executable discovery for tsc
            lint_timeout: Seconds before one ESLint run is abandoned (0 = none)

        Server:
            host / port: Bind address for the dashboard and push channel
            allowed_origins: Origins allowed to load overlay.js and call the API
            queue_size: Per-observer queue bound; stale updates are drained
            ping_interval: Seconds of silence before a keepalive ping
            shutdown_timeout: Seconds to wait for a worker to exit before kill
    """

    project_root: str = "."
    root_dir: str = "src"
    extensions: list[str] = field(default_factory=lambda: [".js", ".jsx", ".ts", ".tsx"])

    eslint: bool = True
    ts: bool = False
    tsconfig_path: str = ""
    eslint_command: str = ""
    tsc_command: str = ""
    lint_timeout: float = 0.0

    host: str = "127.0.0.1"
    port: int = 5174
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    queue_size: int = 32
    ping_interval: float = 30.0
    shutdown_timeout: float = 5.0

    def __post_init__(self) -> None:
        """Validate and normalize configuration."""
        root_dir = str(self.root_dir).strip().rstrip("/\\") or "src"
        object.__setattr__(self, "root_dir", root_dir)
        if Path(root_dir).is_absolute():
            raise InvalidConfigError("root_dir", root_dir, "must be relative to project_root")

        exts = [e if e.startswith(".") else f".{e}" for e in self.extensions]
        if not exts:
            raise InvalidConfigError("extensions", self.extensions, "at least one is required")
        object.__setattr__(self, "extensions", exts)

        if not 0 < self.port < 65536:
            raise InvalidConfigError("port", self.port, "must be between 1 and 65535")
        if self.queue_size < 1:
            raise InvalidConfigError("queue_size", self.queue_size, "must be at least 1")
        if self.ping_interval <= 0:
            raise InvalidConfigError("ping_interval", self.ping_interval, "must be positive")
        if self.shutdown_timeout <= 0:
            raise InvalidConfigError("shutdown_timeout", self.shutdown_timeout, "must be positive")
        if self.lint_timeout < 0:
            raise InvalidConfigError("lint_timeout", self.lint_timeout, "must be non-negative")

    @property
    def resolved_root(self) -> Path:
        return Path(self.project_root).resolve()

    @property
    def scope_dir(self) -> Path:
        """Absolute directory whose changes are routed to batch analyzers."""
        return self.resolved_root / self.root_dir


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> OverlayConfig:
    """Load configuration with auto-discovery and merging.

    Raises:
        ConfigurationError: If a config file is unreadable, an explicit
            file is missing, or a value is invalid.
        InvalidPathError: If the project root is not an existing directory.
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / ".lint-overlay.toml"
    if global_config.exists():
        merged.update(_load_toml_file(global_config, "global config"))

    project_config = Path.cwd() / "lint-overlay.toml"
    if project_config.exists():
        merged.update(_load_toml_file(project_config, "project config"))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_file(config_file, "config file"))

    merged.update(_load_env_vars())
    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = OverlayConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise ConfigurationError(f"Invalid configuration: {e}")

    root = config.resolved_root
    if not root.exists():
        raise InvalidPathError(root, "project directory does not exist")
    if not root.is_dir():
        raise InvalidPathError(root, "project path is not a directory")
    return config


def _load_env_vars() -> dict[str, Any]:
    """Read LINT_OVERLAY_<FIELD> variables, parsed to the field's type."""
    type_hints = get_type_hints(OverlayConfig)
    result: dict[str, Any] = {}

    for field_name in OverlayConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue
        try:
            result[field_name] = _parse_env_value(env_value, type_hints[field_name])
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")

    return result


_TRUTHY = frozenset({"true", "1", "yes", "on"})
_FALSY = frozenset({"false", "0", "no", "off"})


def _parse_bool(value: str) -> bool:
    token = value.strip().lower()
    if token in _TRUTHY:
        return True
    if token in _FALSY:
        return False
    raise ValueError(f"expected true/false, got '{value}'")


def _parse_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


_ENV_PARSERS: dict[Any, Callable[[str], Any]] = {
    bool: _parse_bool,
    int: int,
    float: float,
    str: str,
    list[str]: _parse_list,
}


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment string into *type_hint*; lists are comma separated."""
    return _ENV_PARSERS[type_hint](value)


def _load_toml_file(path: Path, label: str) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid {label} '{path}': {e}")
    # Accept either a flat file or a [lint-overlay] table
    return data.get("lint-overlay", data)
