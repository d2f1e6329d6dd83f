"""Run settings: built-in defaults with environment-variable overrides."""

import os
import shlex
from dataclasses import dataclass
from typing import Mapping, Optional

GROWTH_REPO = "git@github.com:startkit-ai/startkit.ai.git"
STARTER_REPO = "git@github.com:startkit-ai/startkit.ai.git"
DEFAULT_PROJECT_NAME = "my-ai-project"
DEFAULT_REMOTE_NAME = "startkit"
DEFAULT_INSTALL_COMMAND = ("yarn",)
DEFAULT_LAUNCH_COMMAND = ("node", "index.js", "--open")
MIN_NODE_VERSION = "18.0.0"
PURCHASE_URL = "https://startkit.ai"


def _env_command(environ: Mapping[str, str], name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = (environ.get(name) or "").strip()
    return tuple(shlex.split(raw)) if raw else default


@dataclass(frozen=True)
class Settings:
    growth_repo: str = GROWTH_REPO
    starter_repo: str = STARTER_REPO
    remote_name: str = DEFAULT_REMOTE_NAME
    install_command: tuple[str, ...] = DEFAULT_INSTALL_COMMAND
    launch_command: tuple[str, ...] = DEFAULT_LAUNCH_COMMAND
    min_node_version: str = MIN_NODE_VERSION

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``STARTKIT_*`` variables, falling back to defaults.

        Recognised variables: STARTKIT_GROWTH_REPO, STARTKIT_STARTER_REPO,
        STARTKIT_REMOTE_NAME, STARTKIT_INSTALL_CMD, STARTKIT_LAUNCH_CMD,
        STARTKIT_MIN_NODE. Empty values count as unset.
        """
        env = os.environ if environ is None else environ
        return cls(
            growth_repo=(env.get("STARTKIT_GROWTH_REPO") or "").strip() or GROWTH_REPO,
            starter_repo=(env.get("STARTKIT_STARTER_REPO") or "").strip() or STARTER_REPO,
            remote_name=(env.get("STARTKIT_REMOTE_NAME") or "").strip() or DEFAULT_REMOTE_NAME,
            install_command=_env_command(env, "STARTKIT_INSTALL_CMD", DEFAULT_INSTALL_COMMAND),
            launch_command=_env_command(env, "STARTKIT_LAUNCH_CMD", DEFAULT_LAUNCH_COMMAND),
            min_node_version=(env.get("STARTKIT_MIN_NODE") or "").strip() or MIN_NODE_VERSION,
        )
