#!/usr/bin/env python3
"""
StartKit.AI CLI - Create a new StartKit.AI project

Usage:
    create-startkit init [growth|starter] [project-name]
    create-startkit check

Clones the StartKit.AI template you have access to, installs its dependencies,
removes the modules you don't need and writes a ready-to-use .env file.
"""

import os
import sys
import traceback
from typing import Optional

import typer
import readchar
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text
from rich.live import Live
from rich.align import Align
from rich.table import Table
from rich.tree import Tree
from typer.core import TyperGroup

from .access import REPO_TYPE_CHOICES, RepoLabel, parse_invocation
from .config import Settings
from .errors import PRECONDITION_ERRORS, ScaffoldError
from .process import check_tool, node_version, repo_reachable
from .questions import AnswerSet, AnswerValue, Question, QuestionKind, collect_answers
from .pipeline import (
    STAGE_LABELS,
    Collaborators,
    ScaffoldOrchestrator,
    Stage,
    StageEvent,
    StageStatus,
)
from .runtime import runtime_satisfies

# ASCII Art Banner
BANNER = """
███████╗████████╗ █████╗ ██████╗ ████████╗██╗  ██╗██╗████████╗
██╔════╝╚══██╔══╝██╔══██╗██╔══██╗╚══██╔══╝██║ ██╔╝██║╚══██╔══╝
███████╗   ██║   ███████║██████╔╝   ██║   █████╔╝ ██║   ██║
╚════██║   ██║   ██╔══██║██╔══██╗   ██║   ██╔═██╗ ██║   ██║
███████║   ██║   ██║  ██║██║  ██║   ██║   ██║  ██╗██║   ██║
╚══════╝   ╚═╝   ╚═╝  ╚═╝╚═╝  ╚═╝   ╚═╝   ╚═╝  ╚═╝╚═╝   ╚═╝
"""

TAGLINE = "StartKit.AI - Build your AI product on a ready-made API"

# Stages that block on git/yarn get a spinner while they run
SPINNER_STAGES = {Stage.CLONING, Stage.INSTALLING_DEPS}


class StepTracker:
    """Track and render steps as a tree, one line per step."""

    def __init__(self, title: str):
        self.title = title
        self.steps = []  # list of dicts: {key, label, status, detail}

    def add(self, key: str, label: str):
        if key not in [s["key"] for s in self.steps]:
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": ""})

    def start(self, key: str, detail: str = ""):
        self._update(key, status="running", detail=detail)

    def complete(self, key: str, detail: str = ""):
        self._update(key, status="done", detail=detail)

    def error(self, key: str, detail: str = ""):
        self._update(key, status="error", detail=detail)

    def skip(self, key: str, detail: str = ""):
        self._update(key, status="skipped", detail=detail)

    def get(self, key: str) -> Optional[dict]:
        for s in self.steps:
            if s["key"] == key:
                return s
        return None

    def _update(self, key: str, status: str, detail: str):
        step = self.get(key)
        if step is None:
            self.steps.append({"key": key, "label": key, "status": status, "detail": detail})
            return
        step["status"] = status
        if detail:
            step["detail"] = detail

    def line(self, step: dict) -> str:
        label = step["label"]
        detail_text = step["detail"].strip() if step["detail"] else ""

        status = step["status"]
        if status == "done":
            symbol = "[green]●[/green]"
        elif status == "pending":
            symbol = "[green dim]○[/green dim]"
        elif status == "running":
            symbol = "[cyan]○[/cyan]"
        elif status == "error":
            symbol = "[red]●[/red]"
        elif status == "skipped":
            symbol = "[yellow]○[/yellow]"
        else:
            symbol = " "

        if status == "pending":
            if detail_text:
                return f"{symbol} [bright_black]{label} ({detail_text})[/bright_black]"
            return f"{symbol} [bright_black]{label}[/bright_black]"
        if detail_text:
            return f"{symbol} [white]{label}[/white] [bright_black]({detail_text})[/bright_black]"
        return f"{symbol} [white]{label}[/white]"

    def render(self):
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps:
            tree.add(self.line(step))
        return tree


class ConsoleReporter:
    """Renders pipeline events: a status line per finished stage, spinners for slow ones."""

    def __init__(self, tracker: StepTracker):
        self.tracker = tracker
        self._status = None

    def __call__(self, event: StageEvent) -> None:
        key = event.stage.value
        if event.status is StageStatus.STARTED:
            self.tracker.start(key, event.detail)
            if event.stage in SPINNER_STAGES:
                self._status = console.status(f"[cyan]{STAGE_LABELS[event.stage]}...[/cyan]")
                self._status.start()
            elif event.stage is Stage.COLLECTING_ANSWERS:
                console.print("\n[bold]Welcome to StartKit.AI, let's get started![/bold]")
            elif event.stage is Stage.LAUNCHING:
                console.print("\n[cyan]Running StartKit.AI[/cyan]")
            return

        self.close()
        if event.status is StageStatus.SUCCEEDED:
            self.tracker.complete(key, event.detail)
        elif event.status is StageStatus.FAILED:
            self.tracker.error(key, event.detail)
        else:
            self.tracker.skip(key, event.detail)
        step = self.tracker.get(key)
        if step is not None and event.status is not StageStatus.SKIPPED:
            console.print(self.tracker.line(step))

    def close(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


def get_key():
    """Get a single keypress in a cross-platform way using readchar."""
    key = readchar.readkey()

    if key == readchar.key.UP:
        return 'up'
    if key == readchar.key.DOWN:
        return 'down'
    if key == readchar.key.ENTER:
        return 'enter'
    if key == readchar.key.ESC:
        return 'escape'
    if key == readchar.key.SPACE:
        return 'space'
    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt

    return key


def select_with_arrows(options: dict, prompt_text: str = "Select an option", default_key: str = None) -> str:
    """
    Interactive selection using arrow keys with Rich Live display.

    Args:
        options: Dict with keys as option keys and values as descriptions
        prompt_text: Text to show above the options
        default_key: Default option key to start with

    Returns:
        Selected option key
    """
    option_keys = list(options.keys())
    if default_key and default_key in option_keys:
        selected_index = option_keys.index(default_key)
    else:
        selected_index = 0

    def create_selection_panel():
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")

        for i, key in enumerate(option_keys):
            pointer = "▶" if i == selected_index else " "
            table.add_row(pointer, f"[cyan]{key}[/cyan] [dim]({options[key]})[/dim]")

        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")

        return Panel(table, title=f"[bold]{prompt_text}[/bold]", border_style="cyan", padding=(1, 2))

    console.print()

    with Live(create_selection_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = get_key()
                if key == 'up':
                    selected_index = (selected_index - 1) % len(option_keys)
                elif key == 'down':
                    selected_index = (selected_index + 1) % len(option_keys)
                elif key == 'enter':
                    break
                elif key == 'escape':
                    console.print("\n[yellow]Selection cancelled[/yellow]")
                    raise typer.Exit(1)

                live.update(create_selection_panel(), refresh=True)

            except KeyboardInterrupt:
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)

    selected_key = option_keys[selected_index]
    console.print(f"[green]?[/green] {prompt_text} [cyan]{selected_key}[/cyan]")
    return selected_key


def multi_select_with_arrows(options: dict, prompt_text: str = "Select options", default_keys: list = None) -> list:
    """Allow selecting one or more options using arrow keys + space to toggle."""
    option_keys = list(options.keys())
    selected_indices = {option_keys.index(k) for k in (default_keys or []) if k in option_keys}
    cursor_index = 0

    def build_panel():
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")

        for i, key in enumerate(option_keys):
            indicator = "[cyan]☑" if i in selected_indices else "[bright_black]☐"
            pointer = "▶" if i == cursor_index else " "
            table.add_row(pointer, f"{indicator} [cyan]{key}[/cyan] [dim]({options[key]})[/dim]")

        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to move, Space to toggle, Enter to confirm, Esc to cancel[/dim]")

        return Panel(table, title=f"[bold]{prompt_text}[/bold]", border_style="cyan", padding=(1, 2))

    console.print()

    with Live(build_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = get_key()
                if key == 'up':
                    cursor_index = (cursor_index - 1) % len(option_keys)
                elif key == 'down':
                    cursor_index = (cursor_index + 1) % len(option_keys)
                elif key in ('space', ' '):
                    selected_indices ^= {cursor_index}
                elif key == 'enter' and selected_indices:
                    break
                elif key == 'escape':
                    console.print("\n[yellow]Selection cancelled[/yellow]")
                    raise typer.Exit(1)

                live.update(build_panel(), refresh=True)

            except KeyboardInterrupt:
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)

    # Preserve original order from option_keys
    chosen = [option_keys[i] for i in range(len(option_keys)) if i in selected_indices]
    console.print(f"[green]?[/green] {prompt_text} [cyan]{', '.join(chosen)}[/cyan]")
    return chosen


def ask_question(question: Question, answers: AnswerSet) -> Optional[AnswerValue]:
    """Prompt for one question; without a TTY the question's default is used."""
    interactive = sys.stdin.isatty()

    if question.kind is QuestionKind.SINGLE_CHOICE:
        default = question.default or next(iter(question.choices))
        if not interactive:
            return default
        return select_with_arrows(dict(question.choices), question.message, default)

    if question.kind is QuestionKind.MULTI_CHOICE:
        default = list(question.default or question.choices)
        if not interactive:
            return default
        return multi_select_with_arrows(dict(question.choices), question.message, default)

    if not interactive:
        return question.default
    while True:
        console.print()
        value = Prompt.ask(f"[green]?[/green] {question.message}", default=question.default, console=console)
        value = (value or "").strip()
        if value or not question.required:
            return value or None
        console.print("[red]A value is required.[/red]")


console = Console()


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        show_banner()
        super().format_help(ctx, formatter)


app = typer.Typer(
    name="create-startkit",
    help="Create a new StartKit.AI project",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


def show_banner():
    """Display the ASCII art banner."""
    banner_lines = BANNER.strip().split('\n')
    colors = ["bright_blue", "blue", "cyan", "bright_cyan", "white", "bright_white"]

    styled_banner = Text()
    for i, line in enumerate(banner_lines):
        color = colors[i % len(colors)]
        styled_banner.append(line + "\n", style=color)

    console.print(Align.center(styled_banner))
    console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    console.print()


@app.callback()
def callback(ctx: typer.Context):
    """Show banner when no subcommand is provided."""
    if ctx.invoked_subcommand is None and "--help" not in sys.argv and "-h" not in sys.argv:
        show_banner()
        console.print(Align.center("[dim]Run 'create-startkit --help' for usage information[/dim]"))
        console.print()


def print_debug_panel(error: BaseException) -> None:
    _env_pairs = [
        ("Python", sys.version.split()[0]),
        ("Platform", sys.platform),
        ("CWD", os.getcwd()),
        ("Node", node_version() or "not found"),
    ]
    _label_width = max(len(k) for k, _ in _env_pairs)
    env_lines = [f"{k.ljust(_label_width)} → [bright_black]{v}[/bright_black]" for k, v in _env_pairs]
    console.print(Panel("\n".join(env_lines), title="Debug Environment", border_style="magenta"))
    cause = error.__cause__ or error
    trace = "".join(traceback.format_exception(type(cause), cause, cause.__traceback__))
    console.print(Panel(trace.strip(), title="Traceback", border_style="magenta"))


@app.command()
def init(
    repo_type: str = typer.Argument(None, help="Template to use: growth or starter. Anything else is taken as the project name"),
    project_name: str = typer.Argument(None, help="Directory to create the project in (default: my-ai-project)"),
    no_launch: bool = typer.Option(False, "--no-launch", help="Don't offer to start the project when setup finishes"),
    cleanup_on_failure: bool = typer.Option(False, "--cleanup-on-failure", help="Remove the project directory if a step fails after cloning"),
    debug: bool = typer.Option(False, "--debug", help="Show verbose diagnostic output on failure"),
):
    """
    Create a new StartKit.AI project.

    This command will:
    1. Check your Node.js version and which StartKit.AI repos you can access
    2. Ask for your project settings (API keys, MongoDB, storage, Pinecone)
    3. Clone the template and install its dependencies with yarn
    4. Remove the modules you didn't select and write your .env file

    Examples:
        create-startkit init
        create-startkit init my-app
        create-startkit init starter my-app
    """
    show_banner()

    override, name = parse_invocation([repo_type, project_name])
    settings = Settings.from_env()

    tracker = StepTracker("Set up StartKit.AI")
    for stage, label in STAGE_LABELS.items():
        # launching is reported after the summary
        if stage is not Stage.LAUNCHING:
            tracker.add(stage.value, label)
    reporter = ConsoleReporter(tracker)

    orchestrator = ScaffoldOrchestrator(
        Collaborators.default(settings, lambda questions: collect_answers(questions, ask_question)),
        settings,
        project_name=name,
        override=override,
        ask_to_start=not no_launch,
        cleanup_on_failure=cleanup_on_failure,
        on_event=reporter,
    )

    try:
        result = orchestrator.run()
    except ScaffoldError as e:
        reporter.close()
        console.print()
        console.print(Panel(str(e), title=f"[red]{e.title}[/red]", border_style="red", padding=(1, 2)))
        if debug:
            print_debug_panel(e)
        if not isinstance(e, PRECONDITION_ERRORS) and not cleanup_on_failure:
            console.print("[dim]The partially created project was left in place for inspection.[/dim]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        reporter.close()
        console.print("\n[yellow]Setup cancelled[/yellow]")
        raise typer.Exit(1)

    console.print()
    console.print(tracker.render())
    console.print("\n[bold green]Setup complete![/bold green]")

    steps_lines = [
        f"1. Go to the project folder: [cyan]cd {result.project_path}[/cyan]",
        "2. Review your settings in [cyan].env[/cyan]",
        "3. Start the API: [cyan]yarn dev[/cyan]",
    ]
    console.print()
    console.print(Panel("\n".join(steps_lines), title="Next Steps", border_style="cyan", padding=(1, 2)))

    tracker.add(Stage.LAUNCHING.value, STAGE_LABELS[Stage.LAUNCHING])
    # Ctrl+C is how the running dev server gets stopped
    try:
        orchestrator.launch(result)
    except KeyboardInterrupt:
        console.print("\n[yellow]StartKit.AI stopped[/yellow]")
        return

    if result.launch_error is not None:
        console.print(Panel(str(result.launch_error), title="[yellow]Launch Failed[/yellow]", border_style="yellow"))


@app.command()
def check():
    """Check that required tools are installed and which templates you can access."""
    show_banner()
    console.print("[bold]Checking your setup...[/bold]\n")

    settings = Settings.from_env()
    tracker = StepTracker("Check StartKit.AI Requirements")

    for tool, label in [("git", "Git version control"), ("node", "Node.js"), ("yarn", "Yarn package manager")]:
        tracker.add(tool, label)
        if check_tool(tool):
            tracker.complete(tool, "available")
        else:
            tracker.error(tool, "not found")

    version = node_version()
    tracker.add("node-version", f"Node.js {settings.min_node_version}+")
    if runtime_satisfies(version, settings.min_node_version):
        tracker.complete("node-version", version)
    else:
        tracker.error("node-version", version or "not found")

    repos = {RepoLabel.GROWTH: settings.growth_repo, RepoLabel.STARTER: settings.starter_repo}
    reachable = False
    for label, repo in repos.items():
        key = f"repo-{label.value}"
        tracker.add(key, REPO_TYPE_CHOICES[label.value])
        if repo_reachable(repo):
            reachable = True
            tracker.complete(key, "accessible")
        else:
            tracker.error(key, "no access")

    console.print(tracker.render())

    if reachable:
        console.print("\n[bold green]You're ready to create a StartKit.AI project![/bold green]")
    else:
        console.print("\n[dim]Tip: purchase access from https://startkit.ai to clone the template[/dim]")


def main():
    app()


if __name__ == "__main__":
    main()
