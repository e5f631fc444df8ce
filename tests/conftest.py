"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from publish_orchestrator.batch import Orchestrator, TaskRegistry
from publish_orchestrator.strategies import StrategyRegistry
from tests.fakes import register_scripted


@pytest.fixture
def strategy_registry() -> StrategyRegistry:
    """Registry with a/b succeeding immediately."""
    registry = StrategyRegistry()
    register_scripted(registry, "a")
    register_scripted(registry, "b")
    return registry


@pytest.fixture
def task_registry(strategy_registry: StrategyRegistry) -> TaskRegistry:
    return TaskRegistry(strategy_registry)


@pytest.fixture
def orchestrator(strategy_registry: StrategyRegistry, task_registry: TaskRegistry) -> Orchestrator:
    return Orchestrator(
        strategy_registry,
        task_registry,
        max_concurrent=3,
        timeout=5.0,
        publish_interval=0.0,
    )


@pytest.fixture
def sample_config(tmp_path: Path) -> Path:
    """Create a sample configuration file."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(f"""
version: "1.0"

batch:
  max_concurrent: 2
  timeout: 30
  publish_interval: 0

storage:
  work_dir: "{tmp_path / 'work'}"

targets:
  archive:
    type: file
    name: Archive
    output_dir: "{tmp_path / 'archive'}"
  mirror:
    type: file
    output_dir: "{tmp_path / 'mirror'}"
  blog:
    type: webhook
    url: "http://127.0.0.1:9/api/posts"
    enabled: false
""")
    return config_file


@pytest.fixture
def sample_job(tmp_path: Path) -> Path:
    """Create a sample job file with external content."""
    (tmp_path / "post.md").write_text("Hello **world**.\n", encoding="utf-8")
    job_file = tmp_path / "job.yaml"
    job_file.write_text("""
title: "Release notes"
content_file: "post.md"
targets: [archive, mirror]
options:
  tags: [release]
  summary: "What changed"
""")
    return job_file
