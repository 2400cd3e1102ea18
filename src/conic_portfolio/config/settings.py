"""Process-wide settings for the CLI and the solver entry points.

Values come, in increasing precedence, from the defaults below, a ``.env``
file, ``CONIC_PORTFOLIO_*`` environment variables and explicit overrides.
:func:`get_settings` caches the result.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping

from .constants import DEFAULT_BACKEND, DEFAULT_SPARSITY_TOLERANCE

__all__ = [
    "ENV_PREFIX",
    "Settings",
    "get_settings",
    "load_env_file",
    "reset_settings_cache",
]


ENV_PREFIX = "CONIC_PORTFOLIO_"
"""Prefix shared by every environment variable of the project."""

_BOOL_TRUE = {"1", "true", "yes", "on"}
_BOOL_FALSE = {"0", "false", "no", "off"}

# (override key, attribute, type, default); paths are relative to the root.
_FIELDS: tuple[tuple[str, str, type, Any], ...] = (
    ("CONFIGS_DIR", "configs_dir", Path, "configs"),
    ("LOGS_DIR", "logs_dir", Path, "logs"),
    ("STRUCTURED_LOGGING", "structured_logging", bool, False),
    ("DEFAULT_BACKEND", "default_backend", str, DEFAULT_BACKEND),
    ("SOLVER_VERBOSE", "solver_verbose", bool, False),
    ("SPARSITY_TOLERANCE", "sparsity_tolerance", float, DEFAULT_SPARSITY_TOLERANCE),
)


def _coerce_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _BOOL_TRUE:
        return True
    if lowered in _BOOL_FALSE:
        return False
    raise ValueError(f"Cannot interpret '{value}' as boolean")


def _convert(value: Any, target: type, *, root: Path) -> Any:
    if target is Path:
        path = Path(str(value)).expanduser()
        return path if path.is_absolute() else root / path
    if not isinstance(value, str):
        return target(value)
    if target is bool:
        return _coerce_bool(value)
    return target(value.strip())


def load_env_file(path: Path) -> Mapping[str, str]:
    """Parse ``KEY=value`` lines, skipping blanks, comments and malformed lines."""

    entries: MutableMapping[str, str] = {}
    if not path.exists():
        return entries

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        entries[key.strip()] = value.strip()
    return entries


def _default_root() -> Path:
    return Path(__file__).resolve().parents[3]


@dataclass(slots=True, frozen=True)
class Settings:
    """Resolved paths, logging mode and solver defaults."""

    project_root: Path
    configs_dir: Path
    logs_dir: Path
    structured_logging: bool
    default_backend: str
    solver_verbose: bool
    sparsity_tolerance: float

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"project_root": str(self.project_root)}
        for _, attribute, target, _ in _FIELDS:
            value = getattr(self, attribute)
            payload[attribute] = str(value) if target is Path else value
        return payload

    @classmethod
    def from_env(
        cls,
        *,
        overrides: Mapping[str, Any] | None = None,
        env_file: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "Settings":
        """Merge defaults, ``env_file`` (or ``<root>/.env``), ``environ`` and ``overrides``.

        ``overrides`` keys are the variable names without prefix (``LOGS_DIR``)
        plus ``project_root``. Unknown keys raise :class:`KeyError`.
        """

        overrides = dict(overrides or {})
        system_environ = dict(os.environ if environ is None else environ)
        root_key = f"{ENV_PREFIX}PROJECT_ROOT"

        file_values: dict[str, str] = {}
        if env_file is not None:
            file_values.update(load_env_file(Path(env_file).expanduser()))

        root_value = overrides.pop(
            "project_root", file_values.get(root_key, system_environ.get(root_key))
        )
        project_root = (
            _default_root() if root_value is None else Path(str(root_value)).expanduser().resolve()
        )
        if env_file is None:
            file_values.update(load_env_file(project_root / ".env"))

        # The process environment wins over the file.
        env_values = {**file_values, **system_environ}

        resolved: dict[str, Any] = {}
        for key, attribute, target, default in _FIELDS:
            if key in overrides:
                raw = overrides.pop(key)
            else:
                raw = env_values.get(f"{ENV_PREFIX}{key}", default)
            resolved[attribute] = _convert(raw, target, root=project_root)

        if overrides:
            unknown = ", ".join(sorted(overrides))
            raise KeyError(f"Unknown override(s): {unknown}")

        resolved["default_backend"] = resolved["default_backend"].lower()
        return cls(project_root=project_root, **resolved)


_SETTINGS_CACHE: Settings | None = None


def get_settings(**kwargs: Any) -> Settings:
    """Return the cached settings; keyword arguments bypass the cache."""

    global _SETTINGS_CACHE
    if kwargs:
        return Settings.from_env(**kwargs)
    if _SETTINGS_CACHE is None:
        _SETTINGS_CACHE = Settings.from_env()
    return _SETTINGS_CACHE


def reset_settings_cache() -> None:
    global _SETTINGS_CACHE
    _SETTINGS_CACHE = None
