"""Subprocess-backed collaborators: git, the package manager and the launched app."""

import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence


def run_command(cmd: Sequence[str], cwd: Optional[Path] = None, capture: bool = False, quiet: bool = True) -> Optional[str]:
    """Run a command and raise ``CalledProcessError`` on a non-zero exit.

    With ``capture`` the stripped stdout is returned. ``quiet`` keeps output off
    the terminal (stderr stays on the raised error); otherwise the child shares
    this terminal.
    """
    if capture or quiet:
        result = subprocess.run(list(cmd), cwd=cwd, check=True, capture_output=True, text=True)
        return result.stdout.strip() if capture else None
    subprocess.run(list(cmd), cwd=cwd, check=True)
    return None


def check_tool(tool: str) -> bool:
    """Check if a tool is installed."""
    return shutil.which(tool) is not None


def node_version() -> Optional[str]:
    """Return ``node --version`` output, or ``None`` when node is unavailable."""
    try:
        return run_command(["node", "--version"], capture=True)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None


def repo_reachable(repo: str) -> bool:
    """Whether the current git credentials can list the remote repository."""
    try:
        run_command(["git", "ls-remote", repo], capture=True)
        return True
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False


def clone_repo(repo: str, project_path: Path, remote_name: str) -> None:
    run_command(["git", "clone", "--recurse-submodules", repo, str(project_path)])
    run_command(["git", "remote", "add", remote_name, repo], cwd=project_path)


def install_dependencies(project_path: Path, command: Sequence[str]) -> None:
    run_command(command, cwd=project_path)


def launch_project(project_path: Path, command: Sequence[str]) -> None:
    run_command(command, cwd=project_path, quiet=False)
