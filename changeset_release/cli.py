"""CLI entry point for changeset-release."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from changeset_release.errors import ReleaseError
from changeset_release.pipeline import release_status, run_release


def _error_message(exc: ReleaseError) -> str:
    message = str(exc)
    if exc.applied:
        message += "\n\nFiles already updated (not rolled back):\n" + "\n".join(
            f"  {p}" for p in exc.applied
        )
    return message


@click.group()
@click.version_option(package_name="changeset-release")
def cli() -> None:
    """Version monorepo packages from pending changesets."""


@cli.command()
@click.option(
    "--commit/--no-commit",
    default=None,
    help="Commit the release, or leave changes for review.",
)
@click.option(
    "--skip-ci/--no-skip-ci",
    default=None,
    help="Add [skip ci] to the release commit message.",
)
@click.option(
    "--changelog/--no-changelog",
    default=None,
    help="Regenerate changelogs for released packages.",
)
@click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Workspace root. Defaults to the current directory.",
)
@click.option(
    "--changeset-dir",
    default=None,
    help="Directory holding pending changesets, relative to the workspace root.",
)
def version(changelog: bool | None, **options: Any) -> None:
    """Apply pending changesets: bump versions, update changelogs, commit."""
    if changelog is not None:
        options["no_changelog"] = not changelog
    try:
        run_release(options)
    except ReleaseError as exc:
        raise click.ClickException(_error_message(exc)) from exc


@cli.command()
@click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Workspace root. Defaults to the current directory.",
)
@click.option(
    "--changeset-dir",
    default=None,
    help="Directory holding pending changesets, relative to the workspace root.",
)
def status(**options: Any) -> None:
    """Show the versions pending changesets would release."""
    try:
        plan = release_status(options)
    except ReleaseError as exc:
        raise click.ClickException(str(exc)) from exc

    if plan.is_empty:
        click.echo("No unreleased changesets found.")
        return
    click.echo()
    for entry in plan.direct():
        click.echo(
            f"  {entry.name}: {entry.old_version} → {entry.new_version} "
            f"({entry.type}; {', '.join(entry.record_ids)})"
        )
    for entry in plan.cascaded():
        click.echo(
            f"  {entry.name}: {entry.old_version} → {entry.new_version} "
            f"(patch; depends on {', '.join(entry.dependencies)})"
        )
