"""Release pipeline: config → records → plan → manifests → changelogs → commit.

This module orchestrates applying pending changesets:
1. Resolve the run configuration
2. Discover workspace packages and load pending change records
3. Plan one new version per affected package, plus dependency cascades
4. Rewrite manifests (staging each one right away when committing)
5. Regenerate changelogs
6. Remove the consumed change records
7. Commit everything in a single release commit

Nothing is written before planning succeeds. After that, a failure stops
the run where it is: files already written stay written and are reported,
so the operator can inspect and repair the working tree.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .changelog import update_changelogs
from .changesets import clear_records, load_pending
from .config import ReleaseConfig, resolve_config
from .errors import ReleaseError
from .manifests import apply_plan
from .models import ChangeRecord, PackageInfo, ReleasePlan
from .planner import plan_release
from .shell import GitRepository, VersionControl, step
from .workspace import discover_packages

DiscoverFn = Callable[[Path], dict[str, PackageInfo]]
ChangelogFn = Callable[
    [ReleasePlan, Iterable[ChangeRecord], Mapping[str, PackageInfo], Path],
    list[Path],
]


class ReleaseState(enum.Enum):
    LOAD_CONFIG = "load_config"
    LOAD_RECORDS = "load_records"
    PLAN = "plan"
    MUTATE_MANIFESTS = "mutate_manifests"
    UPDATE_CHANGELOGS = "update_changelogs"
    CLEAR_RECORDS = "clear_records"
    COMMIT = "commit"
    COMPLETED = "completed"
    NOOP = "noop"
    ABORTED = "aborted"

    @property
    def terminal(self) -> bool:
        return self in (ReleaseState.COMPLETED, ReleaseState.NOOP, ReleaseState.ABORTED)


@dataclass
class ReleaseRun:
    """Inspectable state of one release run.

    Attributes:
        state: Current (or terminal) state.
        failed_step: The step that raised, when state is ABORTED.
        written: Files written so far, in order.
        staged: Paths staged in git so far, in order.
    """

    state: ReleaseState = ReleaseState.LOAD_CONFIG
    failed_step: ReleaseState | None = None
    config: ReleaseConfig | None = None
    packages: dict[str, PackageInfo] = field(default_factory=dict)
    records: list[ChangeRecord] = field(default_factory=list)
    plan: ReleasePlan | None = None
    commit_message: str | None = None
    written: list[Path] = field(default_factory=list)
    staged: list[Path] = field(default_factory=list)
    error: ReleaseError | None = None


def release_commit_message(plan: ReleasePlan, skip_ci: bool) -> str:
    """Build the release commit message.

    Example:
        RELEASING: Releasing 2 package(s)

        Releases:
          pkg-b@1.3.0

        Dependents:
          pkg-a@0.5.1

        [skip ci]
    """
    lines = [f"RELEASING: Releasing {len(plan.releases)} package(s)", "", "Releases:"]
    lines.extend(f"  {e.name}@{e.new_version}" for e in plan.direct())
    cascaded = plan.cascaded()
    if cascaded:
        lines.extend(["", "Dependents:"])
        lines.extend(f"  {e.name}@{e.new_version}" for e in cascaded)
    if skip_ci:
        lines.extend(["", "[skip ci]"])
    return "\n".join(lines) + "\n"


class ReleaseApplier:
    """Drives one release run as an explicit sequence of steps.

    Collaborators are injected so tests (and other tools) can substitute
    them:

    Args:
        options: Explicit configuration options (see resolve_config).
        vcs: Version control; defaults to GitRepository at the run's cwd.
        discover: Workspace discovery, ``(root) -> packages``.
        changelog: Changelog writer, ``(plan, records, packages, root) -> paths``.
        resolve: Configuration resolver, ``(options) -> ReleaseConfig``.
    """

    def __init__(
        self,
        options: dict[str, Any] | None = None,
        *,
        vcs: VersionControl | None = None,
        discover: DiscoverFn = discover_packages,
        changelog: ChangelogFn = update_changelogs,
        resolve: Callable[[dict[str, Any] | None], ReleaseConfig] = resolve_config,
    ) -> None:
        self.options = options
        self.vcs = vcs
        self.discover = discover
        self.changelog = changelog
        self.resolve = resolve
        self._handlers: dict[ReleaseState, Callable[[ReleaseRun], ReleaseState]] = {
            ReleaseState.LOAD_CONFIG: self._load_config,
            ReleaseState.LOAD_RECORDS: self._load_records,
            ReleaseState.PLAN: self._plan,
            ReleaseState.MUTATE_MANIFESTS: self._mutate_manifests,
            ReleaseState.UPDATE_CHANGELOGS: self._update_changelogs,
            ReleaseState.CLEAR_RECORDS: self._clear_records,
            ReleaseState.COMMIT: self._commit,
        }

    def run(self) -> ReleaseRun:
        """Run every step until a terminal state is reached."""
        run = ReleaseRun()
        while not run.state.terminal:
            handler = self._handlers[run.state]
            try:
                run.state = handler(run)
            except (ReleaseError, OSError) as exc:
                if isinstance(exc, ReleaseError):
                    error = exc
                else:
                    error = ReleaseError(str(exc))
                    error.__cause__ = exc
                error.applied = list(run.written)
                run.error = error
                run.failed_step = run.state
                run.state = ReleaseState.ABORTED
        return run

    # Steps. Each returns the next state.

    def _load_config(self, run: ReleaseRun) -> ReleaseState:
        run.config = self.resolve(self.options)
        if self.vcs is None:
            self.vcs = GitRepository(run.config.cwd)
        return ReleaseState.LOAD_RECORDS

    def _load_records(self, run: ReleaseRun) -> ReleaseState:
        config = self._config(run)
        run.packages = self.discover(config.cwd)
        run.records = load_pending(config.changeset_base, self.vcs)
        if not run.records:
            print("No unreleased changesets found, exiting.")
            return ReleaseState.NOOP
        return ReleaseState.PLAN

    def _plan(self, run: ReleaseRun) -> ReleaseState:
        step("Planning release")
        run.plan = plan_release(run.records, run.packages)
        run.commit_message = release_commit_message(
            run.plan, self._config(run).skip_ci
        )
        print(run.commit_message)
        return ReleaseState.MUTATE_MANIFESTS

    def _mutate_manifests(self, run: ReleaseRun) -> ReleaseState:
        step("Bumping package versions")
        config = self._config(run)

        def on_write(path: Path) -> None:
            run.written.append(path)
            if config.commit:
                self._stage(run, path)

        apply_plan(self._plan_of(run), run.packages, config.cwd, on_write)
        return ReleaseState.UPDATE_CHANGELOGS

    def _update_changelogs(self, run: ReleaseRun) -> ReleaseState:
        config = self._config(run)
        if config.no_changelog:
            return ReleaseState.CLEAR_RECORDS
        step("Updating changelogs")
        try:
            paths = self.changelog(
                self._plan_of(run), run.records, run.packages, config.cwd
            )
        except ReleaseError as exc:
            run.written.extend(getattr(exc, "written", []))
            raise
        run.written.extend(paths)
        if config.commit:
            for path in paths:
                self._stage(run, path)
        return ReleaseState.CLEAR_RECORDS

    def _clear_records(self, run: ReleaseRun) -> ReleaseState:
        step("Removing changesets")
        config = self._config(run)
        for record_dir in clear_records(config.changeset_base):
            print(f"  {record_dir.name}")
        if config.commit:
            self._stage(run, config.changeset_base)
        return ReleaseState.COMMIT

    def _commit(self, run: ReleaseRun) -> ReleaseState:
        config = self._config(run)
        if not config.commit:
            print("All files have been updated. Review them and commit at your leisure")
            print(
                "If you alter versions in a pyproject.toml, make sure internal "
                "dependency constraints still match before publishing."
            )
            return ReleaseState.COMPLETED
        step("Committing changes")
        self._vcs().commit(run.commit_message or "")
        print("  Committed")
        return ReleaseState.COMPLETED

    def _stage(self, run: ReleaseRun, path: Path) -> None:
        self._vcs().stage(path)
        run.staged.append(path)

    def _vcs(self) -> VersionControl:
        if self.vcs is None:
            raise ReleaseError("Version control is not configured")
        return self.vcs

    @staticmethod
    def _config(run: ReleaseRun) -> ReleaseConfig:
        if run.config is None:
            raise ReleaseError("Release configuration has not been loaded")
        return run.config

    @staticmethod
    def _plan_of(run: ReleaseRun) -> ReleasePlan:
        if run.plan is None:
            raise ReleaseError("Release has not been planned")
        return run.plan


def run_release(options: dict[str, Any] | None = None, **kwargs: Any) -> ReleaseRun:
    """Apply all pending changesets.

    Keyword arguments are passed to ReleaseApplier.

    Raises:
        ReleaseError: If the run aborted. ``error.applied`` lists the files
            written before the failure.
    """
    run = ReleaseApplier(options, **kwargs).run()
    if run.state is ReleaseState.ABORTED and run.error is not None:
        raise run.error
    return run


def release_status(
    options: dict[str, Any] | None = None,
    *,
    vcs: VersionControl | None = None,
    discover: DiscoverFn = discover_packages,
) -> ReleasePlan:
    """Compute the plan pending changesets would produce, without applying it.

    Raises:
        ReleaseError: If configuration, records or planning fail.
    """
    config = resolve_config(options)
    packages = discover(config.cwd)
    records = load_pending(
        config.changeset_base, vcs if vcs is not None else GitRepository(config.cwd)
    )
    return plan_release(records, packages)
