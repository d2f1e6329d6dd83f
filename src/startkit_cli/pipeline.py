"""The scaffolding pipeline.

``ScaffoldOrchestrator.run`` walks the stages in a fixed order::

    INIT -> RESOLVING_ACCESS -> VALIDATING_PATH -> COLLECTING_ANSWERS
         -> CLONING -> INSTALLING_DEPS -> PRUNING -> MATERIALIZING_ENV -> DONE

and ``launch`` optionally runs ``LAUNCHING`` once the caller has reported the
finished setup. Each stage either succeeds and the next one starts, or it fails
and the run ends in ``FAILED`` with a ``ScaffoldError``.
Progress is reported only through ``StageEvent`` callbacks; nothing here prints.
"""

import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from . import process
from .access import AccessResult, RepoLabel, TemplateSource, check_access, resolve_template_source
from .config import DEFAULT_PROJECT_NAME, Settings
from .env import DEFAULT_ENV_POLICY, EnvKeyPolicy, env_paths, materialize_env
from .errors import (
    PRECONDITION_ERRORS,
    CloneFailed,
    DestinationExists,
    InstallFailed,
    LaunchFailed,
    ScaffoldError,
    UnsupportedRuntime,
    WriteFailed,
)
from .modules import FeatureModule, prune_modules
from .questions import AnswerSet, Question, build_questions, selected_modules, visible_answers, wants_start
from .runtime import runtime_satisfies


class Stage(str, Enum):
    INIT = "init"
    RESOLVING_ACCESS = "access"
    VALIDATING_PATH = "path"
    COLLECTING_ANSWERS = "answers"
    CLONING = "clone"
    INSTALLING_DEPS = "install"
    PRUNING = "prune"
    MATERIALIZING_ENV = "env"
    DONE = "done"
    LAUNCHING = "launch"
    FAILED = "failed"


STAGE_LABELS = {
    Stage.INIT: "Check Node.js version",
    Stage.RESOLVING_ACCESS: "Check repository access",
    Stage.VALIDATING_PATH: "Check project directory",
    Stage.COLLECTING_ANSWERS: "Collect configuration",
    Stage.CLONING: "Clone StartKit.AI repo",
    Stage.INSTALLING_DEPS: "Install dependencies",
    Stage.PRUNING: "Remove unused modules",
    Stage.MATERIALIZING_ENV: "Create .env file",
    Stage.DONE: "Finalize",
    Stage.LAUNCHING: "Run StartKit.AI",
}


class StageStatus(str, Enum):
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StageEvent:
    stage: Stage
    status: StageStatus
    detail: str = ""
    error: Optional[Exception] = None


@dataclass
class Collaborators:
    """External operations the pipeline depends on."""

    runtime_version: Callable[[], Optional[str]]
    is_reachable: Callable[[str], bool]
    collect: Callable[[Sequence[Question]], Mapping[str, Any]]
    clone: Callable[[str, Path], None]
    install: Callable[[Path], None]
    launch: Callable[[Path], None]

    @classmethod
    def default(cls, settings: Settings, collect: Callable[[Sequence[Question]], Mapping[str, Any]]) -> "Collaborators":
        """Wire the real git/yarn/node commands from ``settings``."""
        return cls(
            runtime_version=process.node_version,
            is_reachable=process.repo_reachable,
            collect=collect,
            clone=lambda repo, path: process.clone_repo(repo, path, settings.remote_name),
            install=lambda path: process.install_dependencies(path, settings.install_command),
            launch=lambda path: process.launch_project(path, settings.launch_command),
        )


@dataclass
class ScaffoldResult:
    project_path: Path
    source: TemplateSource
    answers: AnswerSet
    env_path: Path
    pruned: list[FeatureModule] = field(default_factory=list)
    launched: bool = False
    launch_error: Optional[LaunchFailed] = None


def failure_reason(error: Exception, tail: int = 5) -> str:
    """Error text plus the last lines of a failed command's stderr, if any."""
    stderr = getattr(error, "stderr", None)
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    lines = [line for line in (stderr or "").strip().splitlines() if line.strip()]
    if not lines:
        return str(error)
    return f"{error}\n" + "\n".join(lines[-tail:])


def ensure_path_free(path: Path, display_name: Optional[str] = None) -> None:
    if path.exists():
        raise DestinationExists(f'Project directory "{display_name or path}" already exists.')


class ScaffoldOrchestrator:
    def __init__(
        self,
        collaborators: Collaborators,
        settings: Optional[Settings] = None,
        *,
        project_name: str = DEFAULT_PROJECT_NAME,
        override: Optional[RepoLabel] = None,
        base_dir: Optional[Path] = None,
        ask_to_start: bool = True,
        cleanup_on_failure: bool = False,
        env_policy: EnvKeyPolicy = DEFAULT_ENV_POLICY,
        on_event: Optional[Callable[[StageEvent], None]] = None,
    ):
        self.collaborators = collaborators
        self.settings = settings or Settings()
        self.project_name = project_name
        self.override = override
        self.base_dir = base_dir or Path.cwd()
        self.ask_to_start = ask_to_start
        self.cleanup_on_failure = cleanup_on_failure
        self.env_policy = env_policy
        self._on_event = on_event
        self._state = Stage.INIT
        self._created_path: Optional[Path] = None
        self.access: Optional[AccessResult] = None
        self.source: Optional[TemplateSource] = None

    @property
    def state(self) -> Stage:
        return self._state

    def project_path(self, name: str) -> Path:
        return (self.base_dir / name).resolve()

    def _emit(self, stage: Stage, status: StageStatus, detail: str = "", error: Optional[Exception] = None) -> None:
        if self._on_event:
            self._on_event(StageEvent(stage, status, detail, error))

    def _run_stage(self, stage: Stage, action: Callable[[], Any], wrap=None, describe=None) -> Any:
        self._state = stage
        self._emit(stage, StageStatus.STARTED)
        try:
            value = action()
        except ScaffoldError as e:
            self._emit(stage, StageStatus.FAILED, str(e), e)
            raise
        except Exception as e:
            if wrap is None:
                self._emit(stage, StageStatus.FAILED, str(e), e)
                raise
            error = wrap(f"{STAGE_LABELS[stage]} failed: {failure_reason(e)}")
            self._emit(stage, StageStatus.FAILED, str(error), error)
            raise error from e
        self._emit(stage, StageStatus.SUCCEEDED, describe(value) if describe else "")
        return value

    def _check_runtime(self) -> str:
        version = self.collaborators.runtime_version()
        minimum = self.settings.min_node_version
        if not runtime_satisfies(version, minimum):
            raise UnsupportedRuntime(
                f"Node.js {minimum} or newer is required (found {version or 'no node executable'})."
            )
        return version

    def _resolve_access(self) -> TemplateSource:
        self.access = check_access(self.settings, self.collaborators.is_reachable)
        self.source = resolve_template_source(self.access, self.settings, self.override)
        return self.source

    def _collect(self) -> AnswerSet:
        questions = build_questions(self.project_name, ask_to_start=self.ask_to_start)
        return visible_answers(questions, self.collaborators.collect(questions) or {})

    def _clone(self, project_path: Path) -> None:
        # The user may have typed a different directory at the prompt
        ensure_path_free(project_path)
        self._created_path = project_path
        self.collaborators.clone(self.source.identifier, project_path)

    def run(self) -> ScaffoldResult:
        try:
            result = self._run()
        except ScaffoldError as e:
            self._state = Stage.FAILED
            if self.cleanup_on_failure and not isinstance(e, PRECONDITION_ERRORS):
                self._cleanup()
            raise
        except Exception:
            self._state = Stage.FAILED
            raise
        return result

    def _cleanup(self) -> None:
        if self._created_path is not None and self._created_path.exists():
            shutil.rmtree(self._created_path, ignore_errors=True)

    def _run(self) -> ScaffoldResult:
        self._run_stage(Stage.INIT, self._check_runtime, describe=lambda v: f"node {v}")
        source = self._run_stage(
            Stage.RESOLVING_ACCESS, self._resolve_access, describe=lambda s: f"{s.label.value} template"
        )
        initial_path = self.project_path(self.project_name)
        self._run_stage(
            Stage.VALIDATING_PATH,
            lambda: ensure_path_free(initial_path, self.project_name),
            describe=lambda _: str(initial_path),
        )
        answers = self._run_stage(
            Stage.COLLECTING_ANSWERS, self._collect, describe=lambda a: f"{len(a)} answers"
        )

        project_path = self.project_path(str(answers.get("projectName") or self.project_name))
        self._run_stage(
            Stage.CLONING, lambda: self._clone(project_path), wrap=CloneFailed, describe=lambda _: str(project_path)
        )
        self._run_stage(Stage.INSTALLING_DEPS, lambda: self.collaborators.install(project_path), wrap=InstallFailed)
        pruned = self._run_stage(
            Stage.PRUNING,
            lambda: prune_modules(project_path, selected_modules(answers)),
            wrap=WriteFailed,
            describe=lambda removed: f"removed {len(removed)}" if removed else "all modules kept",
        )
        template_path, dest_path = env_paths(project_path)
        env_path = self._run_stage(
            Stage.MATERIALIZING_ENV,
            lambda: materialize_env(template_path, dest_path, answers, self.env_policy),
            wrap=WriteFailed,
            describe=lambda p: p.name,
        )

        self._state = Stage.DONE
        self._emit(Stage.DONE, StageStatus.SUCCEEDED, "project ready")
        return ScaffoldResult(project_path, source, answers, env_path, pruned)

    def launch(self, result: ScaffoldResult) -> None:
        """Start the finished project if the user asked for it; failures land on ``result``."""
        if not wants_start(result.answers):
            self._emit(Stage.LAUNCHING, StageStatus.SKIPPED, "not requested")
            return
        self._state = Stage.LAUNCHING
        self._emit(Stage.LAUNCHING, StageStatus.STARTED)
        try:
            self.collaborators.launch(result.project_path)
        except Exception as e:
            # A failed launch leaves the finished project as-is
            result.launch_error = LaunchFailed(f"Error executing command: {e}")
            self._emit(Stage.LAUNCHING, StageStatus.FAILED, str(result.launch_error), result.launch_error)
        else:
            result.launched = True
            self._emit(Stage.LAUNCHING, StageStatus.SUCCEEDED)
        finally:
            self._state = Stage.DONE
