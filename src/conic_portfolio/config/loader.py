"""YAML problem files validated against the schemas in :mod:`.schemas`.

Relative paths are looked up in the configured ``configs_dir`` first, then
under the project root, then in the working directory::

    >>> from conic_portfolio.config import ProblemConfig, get_settings, load_config
    >>> settings = get_settings()
    >>> config = load_config(
    ...     "demo_problem.yaml",
    ...     ProblemConfig,
    ...     project_root=settings.project_root,
    ...     configs_dir=settings.configs_dir,
    ... )
    >>> config.risk_limit
    0.06
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Optional, Type, TypeVar, Union

import yaml
from pydantic import BaseModel, ValidationError

__all__ = ["ConfigError", "load_config"]

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class ConfigError(Exception):
    """Raised when a problem file is missing, malformed or invalid."""


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _candidates(
    path: Path, project_root: Optional[Path], configs_dir: Optional[Path]
) -> Iterator[Path]:
    if path.is_absolute():
        yield path
        return
    if configs_dir is not None:
        yield configs_dir / path
    yield (project_root or _project_root()) / path
    yield path.resolve()


def _resolve_config_path(
    file_path: Union[str, Path],
    project_root: Optional[Path] = None,
    configs_dir: Optional[Path] = None,
) -> Path:
    """Return the first existing candidate for ``file_path``.

    Raises
    ------
    FileNotFoundError
        No candidate exists.
    """
    path = Path(file_path).expanduser()
    for candidate in _candidates(path, project_root, configs_dir):
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(f"Config file not found: {file_path}")


def load_config(
    file_path: Union[str, Path],
    schema: Type[T],
    *,
    project_root: Optional[Path] = None,
    configs_dir: Optional[Path] = None,
) -> T:
    """Read ``file_path`` with PyYAML and validate it as ``schema``.

    Raises
    ------
    ConfigError
        If the file is missing, empty, not valid YAML or fails validation.
    """
    try:
        resolved = _resolve_config_path(file_path, project_root, configs_dir)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {file_path}") from e

    logger.debug("Loading %s from %s", schema.__name__, resolved)
    try:
        with open(resolved, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {file_path}: {e}") from e

    if data is None:
        raise ConfigError(f"Empty configuration file: {file_path}")

    try:
        config = schema.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed for {file_path}:\n{e}") from e

    logger.info("Loaded %s from %s", schema.__name__, resolved.name)
    return config
