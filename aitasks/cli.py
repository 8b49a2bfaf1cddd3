"""
CLI for ai-tasks task files.

Usage:
    ai-tasks timestamp
    ai-tasks archive ~/.ai-tasks/my-project.md
    ai-tasks summary ~/.ai-tasks/my-project.md
    ai-tasks list
    ai-tasks watch

Works on the same file format as the sync engine, from a separate process.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .codec import parse_task_file, save_task_file
from .config import load_or_create_config, resolve_folder
from .folder import ensure_tasks_folder, scaffold_project
from .logging_config import configure_ops_log, configure_quiet_mode, enable_debug_mode
from .operations import archive_done_tasks, summarize
from .store import TaskStore
from .types import ProjectFile, get_active_task, get_task_stats, utc_now


# Configure quiet mode by default (suppress verbose library output)
# Set AI_TASKS_VERBOSE=1 to enable debug mode via environment
if os.environ.get("AI_TASKS_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"ai-tasks {version('ai-tasks')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_folder_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _folder_callback(value: Optional[Path]):
    global _folder_override
    _folder_override = value


def _get_folder() -> Path:
    if _folder_override is not None:
        return resolve_folder(_folder_override)
    return load_or_create_config().tasks_folder


app = typer.Typer(
    name="ai-tasks",
    help="Markdown task files for humans and AI agents.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    folder: Annotated[Optional[Path], typer.Option(
        "--folder", "-f",
        envvar="AI_TASKS_FOLDER",
        help="Tasks folder (default: from config, ~/.ai-tasks)",
        callback=_folder_callback,
        is_eager=True,
    )] = None,
):
    """Markdown task files for humans and AI agents."""


FileArgument = Annotated[
    Path,
    typer.Argument(help="Task file (.md with JSON frontmatter)")
]


def _load_or_exit(file: Path) -> ProjectFile:
    """Parse a task file named on the command line, exiting 1 if unusable."""
    resolved = file.expanduser().resolve()
    if not resolved.exists():
        typer.echo(f"Error: file not found: {resolved}", err=True)
        raise typer.Exit(1)
    project = parse_task_file(resolved)
    if not project.is_valid:
        typer.echo(f"Error: {project.parse_error}", err=True)
        raise typer.Exit(1)
    return project


def _format_project_line(project: ProjectFile) -> str:
    if not project.is_valid:
        return f"{project.file_name}  ERROR  {project.parse_error}"
    done, total = get_task_stats(project)
    line = f"{project.file_name}  {project.data.project_name}  [{done}/{total}]"
    active = get_active_task(project)
    if active is not None:
        line += f"  doing: {active.title or active.id}"
    return line


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def timestamp():
    """Print the current UTC time (ISO-8601) for writing into task files."""
    typer.echo(utc_now())


@app.command()
def archive(file: FileArgument):
    """Move done tasks out of the header into an "## Archived Tasks" section."""
    project = _load_or_exit(file)
    count = archive_done_tasks(project)
    if count == 0:
        typer.echo("No done tasks to archive.")
        return
    save_task_file(project)
    typer.echo(f"Archived {count} done task(s).")


@app.command()
def summary(file: FileArgument):
    """Print the header as JSON with done tasks filtered out."""
    project = _load_or_exit(file)
    typer.echo(json.dumps(summarize(project), indent=2, ensure_ascii=False))


@app.command("list")
def list_projects():
    """List every task file in the folder with progress and active task."""
    folder = _get_folder()
    projects = TaskStore().load_all(folder)
    if _get_json_output():
        typer.echo(json.dumps([p.to_dict(include_context=False) for p in projects],
                              indent=2, ensure_ascii=False))
        return
    if not projects:
        typer.echo(f"No task files in {folder}")
        return
    for project in projects:
        typer.echo(_format_project_line(project))


@app.command()
def check(
    file: FileArgument,
    fix: Annotated[bool, typer.Option(
        "--fix",
        help="Rewrite a repaired header in canonical form",
    )] = False,
):
    """Validate a task file; exits 1 if it cannot be parsed."""
    resolved = file.expanduser().resolve()
    project = parse_task_file(resolved)
    if not project.is_valid:
        typer.echo(f"{project.file_name}: {project.error_kind.value}: {project.parse_error}")
        raise typer.Exit(1)
    if project.repaired:
        if fix:
            save_task_file(project)
            typer.echo(f"{project.file_name}: header repaired and rewritten")
        else:
            typer.echo(f"{project.file_name}: header needs repair (run with --fix)")
        return
    done, total = get_task_stats(project)
    typer.echo(f"{project.file_name}: ok ({done}/{total} done)")


@app.command()
def new(
    name: Annotated[str, typer.Argument(help="Project name")],
    path: Annotated[Optional[Path], typer.Option(
        "--path", "-p",
        help="Workspace the project belongs to (default: current directory)",
    )] = None,
):
    """Create a task file for a workspace (or show the existing one)."""
    workspace = (path or Path.cwd()).expanduser().resolve()
    project = scaffold_project(_get_folder(), workspace, name)
    typer.echo(str(project.file_path))


@app.command()
def watch(
    workspace: Annotated[Optional[Path], typer.Option(
        "--workspace", "-w",
        help="Also print the active task for this workspace on each update",
    )] = None,
):
    """Watch the folder, reconciling edits and printing a line per update."""
    from .sync import TaskSync

    config = load_or_create_config()
    if _folder_override is not None:
        config.tasks_folder = resolve_folder(_folder_override)
    # Seed before the ops log creates the folder
    ensure_tasks_folder(config.tasks_folder)
    ops_handler = configure_ops_log(config.tasks_folder)
    sync = TaskSync(config)

    def on_update(snapshot):
        errors = sum(1 for p in snapshot if "parseError" in p)
        line = f"{time.strftime('%H:%M:%S')}  {len(snapshot)} project(s)"
        if errors:
            line += f", {errors} with errors"
        if workspace is not None:
            line += f"  [{sync.status_label(workspace.expanduser().resolve())}]"
        typer.echo(line)

    sync.subscribe(on_update)
    typer.echo(f"Watching {config.tasks_folder} (Ctrl+C to stop)")
    try:
        with sync:
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        typer.echo()
    finally:
        logging.getLogger("aitasks").removeHandler(ops_handler)
        ops_handler.close()


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="ai-tasks CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
