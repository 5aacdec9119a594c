from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from testx.core.attributes import describe, resolve_setup
from testx.core.errors import RewriteError, TransformError
from testx.logging_config import setup_logging
from testx.pipeline.service import FileResult, transform_paths
from testx.settings import Settings, get_settings


app = typer.Typer(help="Rewrite @testx test functions into plain test entry points.")


def _prepare(config: Optional[Path], log_level: Optional[str]) -> Settings:
    try:
        settings = get_settings(config)
    except (FileNotFoundError, ValueError) as exc:
        typer.secho(f"Invalid configuration: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    setup_logging(
        log_level or settings.logging.level,
        json_format=settings.logging.json_format,
        log_file=settings.logging.log_file,
    )
    return settings


def _report(exc: RewriteError) -> None:
    errors = exc.errors if isinstance(exc, TransformError) else [exc]
    for error in errors:
        typer.secho(f"error: {error}", fg=typer.colors.RED, err=True)


def _run(paths: List[Path], settings: Settings, *, write: bool) -> List[FileResult]:
    try:
        return transform_paths(paths, write=write, settings=settings.rewrite)
    except RewriteError as exc:
        _report(exc)
        raise typer.Exit(code=1) from exc
    except FileNotFoundError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def rewrite(
    paths: List[Path] = typer.Argument(..., help="Python files or directories."),
    write: bool = typer.Option(
        False, "--write", "-w", help="Rewrite the files in place."
    ),
    check: bool = typer.Option(
        False, "--check", help="Exit with code 1 if any file would be rewritten."
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to the YAML configuration file.",
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
):
    """Rewrite @testx declarations and print or store the result.

    Parameters
    ----------
    paths:
        Files to rewrite; directories are searched for ``*.py`` files.
    write:
        When ``True``, replace the files on disk instead of printing them.
    check:
        Only report whether files would change.
    config:
        Settings file with the rewrite options.
    log_level:
        Logging verbosity level.
    """
    settings = _prepare(config, log_level)
    results = _run(paths, settings, write=write and not check)
    changed = [result for result in results if result.changed]

    if check:
        for result in changed:
            typer.echo(f"would rewrite {result.path}")
        if changed:
            raise typer.Exit(code=1)
        return

    if write:
        for result in changed:
            typer.secho(
                f"Rewrote {len(result.rewritten)} test(s) in {result.path}",
                fg=typer.colors.GREEN,
            )
        return

    for result in results:
        if len(results) > 1:
            typer.secho(f"# {result.path}", fg=typer.colors.BLUE)
        typer.echo(result.source, nl=False)


@app.command()
def diff(
    paths: List[Path] = typer.Argument(..., help="Python files or directories."),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to the YAML configuration file.",
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
):
    """Show the pending rewrite as a unified diff."""
    settings = _prepare(config, log_level)
    for result in _run(paths, settings, write=False):
        if result.changed:
            typer.echo(result.diff(), nl=False)


@app.command()
def resolve(
    attributes: str = typer.Argument(
        "", help='Attribute list, e.g. \'setup = "setup_666"\' or no_setup.'
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to the YAML configuration file.",
    ),
):
    """Print the setup function an attribute list resolves to."""
    settings = _prepare(config, None)
    try:
        outcome = resolve_setup(
            attributes,
            default_setup=settings.rewrite.default_setup,
            strict=settings.rewrite.strict_entries,
        )
    except RewriteError as exc:
        _report(exc)
        raise typer.Exit(code=1) from exc

    typer.echo(describe(outcome))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
