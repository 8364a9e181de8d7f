"""Typer-based CLI for model-assisted generation, testing, review, refactoring, and commits."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import typer

from dev_agent.gateway import (
    ConfigurationError,
    GatewayError,
    GeminiGateway,
    configured_max_tokens,
    resolve_gemini_api_key,
    resolve_model_name,
)
from dev_agent.git_adapter import GitAdapter, GitCommandError
from dev_agent.models import Story
from dev_agent.workflow import DevelopmentAgent

app = typer.Typer(add_completion=False, help="dev-agent: model-assisted development chores for the current repository")

T = TypeVar("T")

API_KEY_OPTION_HELP = "Gemini API key (defaults to GEMINI_API_KEY)"


def _echo_header(message: str) -> None:
    typer.secho(message, fg=typer.colors.BLUE, bold=True)


def _echo_progress(message: str) -> None:
    typer.echo(f"    {message}")


def _echo_success(message: str) -> None:
    typer.secho(message, fg=typer.colors.GREEN)


def _plural_lines(count: int) -> str:
    return f"{count} line" if count == 1 else f"{count} lines"


def _build_agent(api_key: str | None, model_name: str | None = None) -> DevelopmentAgent:
    """Wire the gateway and git adapter for the current working directory."""
    working_dir = Path.cwd()
    gateway = GeminiGateway(api_key=api_key, model_name=model_name)
    return DevelopmentAgent(
        working_dir=working_dir,
        gateway=gateway,
        vcs=GitAdapter(working_dir),
        progress_callback=_echo_progress,
        max_tokens=configured_max_tokens(),
    )


def _run(action: Callable[[], T]) -> T:
    """Run one command body and turn known failures into exit status 1."""
    try:
        return action()
    except (ConfigurationError, GatewayError, GitCommandError, OSError) as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Model-assisted development chores for the current repository."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("generate")
def generate(
    title: str = typer.Option(..., "--title", "-t", help="User story title"),
    description: str = typer.Option("", "--description", "-d", help="User story description"),
    criteria: list[str] | None = typer.Option(None, "--criteria", "-c", help="Acceptance criterion (repeatable)"),
    output: str = typer.Option("", "--output", "-o", help="Output directory for generated files"),
    tech: str | None = typer.Option(None, "--tech", help="Comma-separated tech stack (detected when omitted)"),
    framework: str = typer.Option("jest", "--framework", help="Test framework named in the prompt"),
    write: bool = typer.Option(False, "--write", help="Write generated files to disk"),
    model_name: str | None = typer.Option(None, "--model", help="Model name override"),
    api_key: str | None = typer.Option(None, "--api-key", help=API_KEY_OPTION_HELP),
) -> None:
    """Generate code from a user story."""
    _echo_header("Development Agent - Code Generation")
    typer.echo(f"Story: {title}")

    story = Story(title=title, description=description, acceptance_criteria=criteria or [])
    result = _run(
        lambda: _build_agent(api_key, model_name).generate_from_story(
            story,
            tech_stack=_split_csv(tech) or None,
            test_framework=framework,
            output_path=output,
            write=write,
        )
    )

    if not result.files:
        typer.secho("Generated 0 files (no code blocks found in the response)", fg=typer.colors.YELLOW)
        if not write:
            typer.echo(result.raw_output)
        return

    typer.echo(f"Generated {len(result.files)} file(s):")
    for artifact in result.files:
        _echo_success(f"  ✓ {artifact.relative_path} ({_plural_lines(artifact.line_count)})")
    if result.written:
        _echo_success("Files written to disk")
        return

    for artifact in result.files:
        typer.echo("")
        typer.secho(f"--- {artifact.relative_path}", bold=True)
        typer.echo(artifact.content)


@app.command("test")
def test(
    file: str = typer.Argument(..., help="Source file to generate tests for"),
    framework: str = typer.Option("jest", "--framework", help="Test framework"),
    coverage: int = typer.Option(80, "--coverage", min=0, max=100, help="Coverage target percentage"),
    write: bool = typer.Option(False, "--write", help="Write the test file to disk"),
    model_name: str | None = typer.Option(None, "--model", help="Model name override"),
    api_key: str | None = typer.Option(None, "--api-key", help=API_KEY_OPTION_HELP),
) -> None:
    """Generate tests for an existing source file."""
    _echo_header("Development Agent - Test Generation")
    typer.echo(f"File: {file}")

    result = _run(
        lambda: _build_agent(api_key, model_name).generate_tests(
            file, framework=framework, coverage_target=coverage, write=write
        )
    )

    typer.echo(f"Test file: {result.test_path}")
    if result.written:
        _echo_success("Test file written")
    else:
        typer.echo(result.tests)


@app.command("review")
def review(
    file: str = typer.Argument(..., help="Source file to review"),
    model_name: str | None = typer.Option(None, "--model", help="Model name override"),
    api_key: str | None = typer.Option(None, "--api-key", help=API_KEY_OPTION_HELP),
) -> None:
    """Review a source file and print suggestions."""
    _echo_header("Development Agent - Code Review")
    typer.echo(f"File: {file}")

    result = _run(lambda: _build_agent(api_key, model_name).review_code(file))
    _echo_success("Review complete")
    typer.echo(result.review)


@app.command("refactor")
def refactor(
    file: str = typer.Argument(..., help="Source file to refactor"),
    instructions: str = typer.Option(..., "--instructions", "-i", help="Refactoring instructions"),
    write: bool = typer.Option(False, "--write", help="Overwrite the file with the refactored code"),
    model_name: str | None = typer.Option(None, "--model", help="Model name override"),
    api_key: str | None = typer.Option(None, "--api-key", help=API_KEY_OPTION_HELP),
) -> None:
    """Refactor a source file according to instructions."""
    _echo_header("Development Agent - Code Refactoring")
    typer.echo(f"File: {file}")
    typer.echo(f"Instructions: {instructions}")

    result = _run(lambda: _build_agent(api_key, model_name).refactor_code(file, instructions, write=write))

    if result.written:
        _echo_success("File updated")
    else:
        typer.echo(result.refactored)


@app.command("commit")
def commit(
    message: str | None = typer.Option(None, "--message", "-m", help="Use this commit message verbatim"),
    files: list[str] | None = typer.Option(None, "--files", "-f", help="File to stage (repeatable, default: all)"),
    convention: str = typer.Option("conventional", "--convention", help="conventional or standard"),
    model_name: str | None = typer.Option(None, "--model", help="Model name override"),
    api_key: str | None = typer.Option(None, "--api-key", help=API_KEY_OPTION_HELP),
) -> None:
    """Stage changes and commit them with a generated or given message."""
    if convention not in ("conventional", "standard"):
        raise typer.BadParameter("convention must be 'conventional' or 'standard'", param_hint="--convention")

    _echo_header("Development Agent - Creating Commit")
    outcome = _run(
        lambda: _build_agent(api_key, model_name).create_commit(
            files=files or None,
            message=message,
            convention=convention,  # type: ignore[arg-type]
        )
    )

    if not outcome.success:
        typer.secho("No changes to commit", fg=typer.colors.YELLOW)
        return

    typer.echo(f"Commit message: {outcome.message}")
    _echo_success(f"Committed: {outcome.commit_id}")


@app.command("info")
def info() -> None:
    """Print repository status and detected tech stack."""
    snapshot = _run(lambda: GitAdapter(Path.cwd()).snapshot())
    typer.echo(f"Git repository: {snapshot.is_repository}")
    if snapshot.is_repository:
        typer.echo(f"Branch: {snapshot.current_branch or '(detached)'}")
        typer.echo(
            f"Modified: {snapshot.modified_count} Created: {snapshot.created_count} "
            f"Deleted: {snapshot.deleted_count} Staged: {snapshot.staged_count}"
        )
    typer.echo(f"Tech stack: {', '.join(snapshot.tech_stack) or '(none detected)'}")


@app.command("doctor")
def doctor() -> None:
    """Print local environment diagnostics used by the CLI."""
    api_key = resolve_gemini_api_key()
    typer.echo(f"GEMINI_API_KEY set: {bool(api_key)}")
    typer.echo(f"Model: {resolve_model_name()}")
    typer.echo(f"Git repository: {GitAdapter(Path.cwd()).is_repository()}")


if __name__ == "__main__":
    app()
