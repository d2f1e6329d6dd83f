"""Shared pytest fixtures for the create-startkit test suite.

Provides:
- A fake template tree, standing in for a cloned StartKit.AI repo
- Fake collaborators for the pipeline (no git, yarn or node required)
- An event recorder
"""

from __future__ import annotations

import subprocess
import textwrap
from pathlib import Path
from typing import Any

import pytest

from startkit_cli.config import Settings
from startkit_cli.modules import FEATURE_MODULES
from startkit_cli.pipeline import Collaborators, StageEvent

GROWTH = "git@example.com:startkit/growth.git"
STARTER = "git@example.com:startkit/starter.git"

ENV_EXAMPLE = textwrap.dedent(
    """\
    # Database
    MONGO_URI=
    JWT_SECRET=
    EMBEDDINGS_BEARER_TOKEN=

    # Storage
    STORAGE_NAME=
    STORAGE_SECRET=
    OPENAI_KEY=sk-placeholder
    """
)


def build_template(path: Path, env_example: str | None = ENV_EXAMPLE) -> Path:
    """Create a template tree with every feature module and an optional .env.example."""
    path.mkdir(parents=True)
    (path / "index.js").write_text("console.log('hi')\n", encoding="utf-8")
    for module in FEATURE_MODULES:
        module_dir = path / module.relative_path
        module_dir.mkdir(parents=True)
        (module_dir / "index.js").write_text(f"// {module.display_name}\n", encoding="utf-8")
    if env_example is not None:
        (path / ".env.example").write_text(env_example, encoding="utf-8")
    return path


@pytest.fixture
def settings() -> Settings:
    return Settings(growth_repo=GROWTH, starter_repo=STARTER, min_node_version="18.0.0")


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    return build_template(tmp_path / "template")


class FakeCollaborators:
    """Records calls and lets each test decide what succeeds."""

    def __init__(self, answers: dict[str, Any] | None = None):
        self.version: str | None = "v20.11.1"
        self.reachable = {GROWTH: True, STARTER: True}
        self.answers = answers if answers is not None else {"mongoUri": "mongodb://x"}
        self.env_example: str | None = ENV_EXAMPLE
        self.clone_error: Exception | None = None
        self.install_error: Exception | None = None
        self.launch_error: Exception | None = None
        self.calls: list[str] = []
        self.cloned: list[tuple[str, Path]] = []
        self.questions = []

    def build(self) -> Collaborators:
        return Collaborators(
            runtime_version=self._version,
            is_reachable=self._is_reachable,
            collect=self._collect,
            clone=self._clone,
            install=self._install,
            launch=self._launch,
        )

    def _version(self):
        self.calls.append("version")
        return self.version

    def _is_reachable(self, repo: str) -> bool:
        self.calls.append(f"reach:{repo}")
        return self.reachable.get(repo, False)

    def _collect(self, questions):
        self.calls.append("collect")
        self.questions = list(questions)
        return dict(self.answers)

    def _clone(self, repo: str, path: Path) -> None:
        self.calls.append("clone")
        self.cloned.append((repo, path))
        if self.clone_error:
            path.mkdir(parents=True)
            raise self.clone_error
        if not self.reachable.get(repo, False):
            raise subprocess.CalledProcessError(
                128, ["git", "clone", repo], stderr=f"fatal: Could not read from remote repository {repo}\n"
            )
        build_template(path, self.env_example)

    def _install(self, path: Path) -> None:
        self.calls.append("install")
        if self.install_error:
            raise self.install_error

    def _launch(self, path: Path) -> None:
        self.calls.append("launch")
        if self.launch_error:
            raise self.launch_error


@pytest.fixture
def fakes() -> FakeCollaborators:
    return FakeCollaborators()


@pytest.fixture
def events() -> list[StageEvent]:
    return []
