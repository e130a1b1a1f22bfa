"""CLI interface for diffview"""

import logging
from pathlib import Path
from typing import Optional

import click

from diffview.application.diff_service import DiffService
from diffview.domain.models.diff import Diff, DiffFileType
from diffview.infrastructure.config.config_manager import ConfigManager, ConfigurationError
from diffview.infrastructure.diff_parser import DiffParseError
from diffview.infrastructure.git.client import GitError

logger = logging.getLogger(__name__)

_TYPE_MARKERS = {
    DiffFileType.ADD: "A",
    DiffFileType.CHANGE: "M",
    DiffFileType.DEL: "D",
    DiffFileType.RENAME: "R",
}


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _create_diff_service(ctx: click.Context) -> DiffService:
    try:
        config_manager = ConfigManager(config_path=ctx.obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=ctx.obj.get("verbose", False), exc=e)
    return DiffService.from_config(config_manager)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _output_diff(diff: Diff, service: DiffService, show_lines: bool, inline: bool) -> None:
    """Output a parsed diff to console

    Args:
        diff: Parsed diff
        service: Diff service used for rendering rows
        show_lines: Print every row with its line numbers
        inline: Render added/removed rows with inline highlighting
    """
    for diff_file in diff.files:
        name = diff_file.name
        if diff_file.is_renamed:
            name = f"{diff_file.old_name} -> {diff_file.name}"
        flags = []
        if diff_file.is_bin:
            flags.append("binary")
        if diff_file.is_incomplete:
            flags.append("too large")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(
            f" {_TYPE_MARKERS[diff_file.type]} {name} "
            f"(+{diff_file.addition} -{diff_file.deletion}){suffix}"
        )

        if show_lines or inline:
            for row in service.render_file(diff_file, inline=inline):
                left = str(row.left_idx) if row.left_idx else ""
                right = str(row.right_idx) if row.right_idx else ""
                click.echo(f"{left:>6} {right:>6} {row.marker}{row.html}")

    click.echo(
        f"{_plural(diff.num_files, 'file')} changed, "
        f"{_plural(diff.total_addition, 'addition')}, "
        f"{_plural(diff.total_deletion, 'deletion')}"
    )
    if diff.is_incomplete:
        click.echo("Diff truncated: too many files to show", err=True)


def _show_options(func):
    func = click.option("--inline", is_flag=True, help="Render rows with inline change highlighting (HTML)")(func)
    func = click.option("--lines", "show_lines", is_flag=True, help="Print every row with line numbers")(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .diffview.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """diffview - parse and render git diffs"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("patch_file", type=click.Path(path_type=Path, allow_dash=True))
@_show_options
@click.pass_context
def parse(ctx, patch_file: Path, show_lines: bool, inline: bool):
    """Parse a patch file.

    PATCH_FILE: Path to the output of git diff ("-" for stdin)
    """
    verbose = ctx.obj.get("verbose", False)
    service = _create_diff_service(ctx)
    try:
        diff = service.parse_patch_file(patch_file)
    except (FileNotFoundError, DiffParseError) as e:
        _die(str(e), verbose=verbose, exc=e)
    _output_diff(diff, service, show_lines, inline)


@cli.command()
@click.argument("repo", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("commit_id", type=str)
@_show_options
@click.pass_context
def commit(ctx, repo: Path, commit_id: str, show_lines: bool, inline: bool):
    """Show the diff introduced by a commit.

    REPO: Path to the repository
    COMMIT_ID: Commit id or other commit-ish
    """
    verbose = ctx.obj.get("verbose", False)
    service = _create_diff_service(ctx)
    try:
        diff = service.get_commit_diff(repo, commit_id)
    except (GitError, DiffParseError) as e:
        _die(str(e), verbose=verbose, exc=e)
    _output_diff(diff, service, show_lines, inline)


@cli.command(name="range")
@click.argument("repo", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("before_id", type=str)
@click.argument("after_id", type=str)
@_show_options
@click.pass_context
def range_(ctx, repo: Path, before_id: str, after_id: str, show_lines: bool, inline: bool):
    """Show the diff between two commits.

    REPO: Path to the repository
    """
    verbose = ctx.obj.get("verbose", False)
    service = _create_diff_service(ctx)
    try:
        diff = service.get_range_diff(repo, before_id, after_id)
    except (GitError, DiffParseError) as e:
        _die(str(e), verbose=verbose, exc=e)
    _output_diff(diff, service, show_lines, inline)


@cli.command()
@click.argument("repo", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("commit_id", type=str)
@click.option(
    "--type",
    "diff_type",
    type=click.Choice(["diff", "patch"], case_sensitive=False),
    default="diff",
    show_default=True,
    help="Plain diff or email patch (format-patch)",
)
@click.pass_context
def raw(ctx, repo: Path, commit_id: str, diff_type: str):
    """Print the raw diff or patch of a commit."""
    verbose = ctx.obj.get("verbose", False)
    service = _create_diff_service(ctx)
    try:
        output = service.get_raw_diff(repo, commit_id, diff_type.lower())
    except GitError as e:
        _die(str(e), verbose=verbose, exc=e)
    click.echo(output, nl=False)


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
