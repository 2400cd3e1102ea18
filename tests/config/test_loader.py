"""Tests for configuration loading and validation module."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from conic_portfolio.config.loader import (
    ConfigError,
    _resolve_config_path,
    load_config,
)
from conic_portfolio.config.schemas import ProblemConfig, SolverConfig

PROBLEM = {
    "assets": ["A1", "A2"],
    "expected_returns": [0.05, 0.09],
    "covariance": [[0.0016, 0.0006], [0.0006, 0.0225]],
    "risk_limit": 0.06,
    "solver": {"backend": "ecos", "verbose": True},
}


@pytest.fixture
def problem_file(tmp_path: Path) -> Path:
    """Create a temporary problem file."""
    config_file = tmp_path / "problem.yaml"
    with open(config_file, "w") as f:
        yaml.safe_dump(PROBLEM, f)
    return config_file


# Tests for _resolve_config_path


def test_resolve_absolute_existing_path(problem_file: Path):
    resolved = _resolve_config_path(problem_file)
    assert resolved == problem_file
    assert resolved.is_absolute()


def test_resolve_relative_to_project_root(tmp_path: Path):
    config_dir = tmp_path / "configs"
    config_dir.mkdir()
    config_file = config_dir / "test.yaml"
    config_file.write_text("risk_limit: 0.1")

    resolved = _resolve_config_path("configs/test.yaml", project_root=tmp_path)
    assert resolved == config_file


def test_resolve_relative_to_cwd(tmp_path: Path, monkeypatch):
    (tmp_path / "local.yaml").write_text("risk_limit: 0.1")
    monkeypatch.chdir(tmp_path)

    resolved = _resolve_config_path("local.yaml", project_root=tmp_path / "elsewhere")
    assert resolved.name == "local.yaml"
    assert resolved.is_absolute()


def test_resolve_nonexistent_file_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        _resolve_config_path("nonexistent.yaml", project_root=tmp_path)


# Tests for load_config


def test_load_problem_config(problem_file: Path):
    config = load_config(problem_file, ProblemConfig)

    assert isinstance(config, ProblemConfig)
    assert config.assets == ["A1", "A2"]
    assert config.solver == SolverConfig(backend="ecos", verbose=True)


def test_load_config_invalid_yaml(tmp_path: Path):
    invalid_file = tmp_path / "invalid.yaml"
    invalid_file.write_text("risk_limit: 0.1\ncovariance: [unclosed list\n")

    with pytest.raises(ConfigError, match="Invalid YAML syntax"):
        load_config(invalid_file, ProblemConfig)


def test_load_config_empty_file_raises(tmp_path: Path):
    empty_file = tmp_path / "empty.yaml"
    empty_file.touch()

    with pytest.raises(ConfigError, match="Empty configuration file"):
        load_config(empty_file, ProblemConfig)


def test_load_config_missing_file(tmp_path: Path):
    with pytest.raises(ConfigError, match="Configuration file not found"):
        load_config("nonexistent.yaml", ProblemConfig, project_root=tmp_path)


def test_load_config_validation_error(tmp_path: Path):
    config_file = tmp_path / "bad_dims.yaml"
    config_file.write_text(
        "expected_returns: [0.05, 0.09]\ncovariance: [[0.01]]\nrisk_limit: 0.06\n"
    )

    with pytest.raises(ConfigError, match="Configuration validation failed"):
        load_config(config_file, ProblemConfig)


# Tests for configs_dir lookup


def test_configs_dir_is_searched_first(tmp_path: Path):
    configs_dir = tmp_path / "configs"
    configs_dir.mkdir()
    in_configs = configs_dir / "problem.yaml"
    in_configs.write_text(yaml.safe_dump({**PROBLEM, "risk_limit": 0.08}))
    (tmp_path / "problem.yaml").write_text(yaml.safe_dump(PROBLEM))

    resolved = _resolve_config_path("problem.yaml", tmp_path, configs_dir)
    assert resolved == in_configs

    config = load_config(
        "problem.yaml", ProblemConfig, project_root=tmp_path, configs_dir=configs_dir
    )
    assert config.risk_limit == 0.08


def test_project_root_used_when_configs_dir_lacks_file(tmp_path: Path):
    (tmp_path / "problem.yaml").write_text(yaml.safe_dump(PROBLEM))

    config = load_config(
        "problem.yaml", ProblemConfig, project_root=tmp_path, configs_dir=tmp_path / "configs"
    )
    assert config.risk_limit == 0.06
