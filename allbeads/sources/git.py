"""
Git-backed repository source.

Drives the ``git`` binary as an asynchronous subprocess. Every command has
its own timeout; when it expires the process is killed and the rig is
reported unreachable. A rig's clone is guarded by a per-rig lock, so it is
never fetched twice concurrently.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import shutil
import time
from pathlib import Path

from pydantic import BaseModel, Field

from allbeads.errors import SourceUninitialized, SourceUnreachable
from allbeads.models.rig import BEADS_DIR, ISSUES_FILE, Rig, SyncMode
from allbeads.sources.auth import git_auth_args, resolve_credentials
from allbeads.sources.base import FetchResult, RepositorySource
from allbeads.sources.local import read_issues_file
from allbeads.utils.logger import get_logger

logger = get_logger(__name__)

MISSING_PATH_MARKERS = ("does not exist in", "exists on disk, but not in", "path '")


class GitCommandResult(BaseModel):
    """Result of one git invocation."""

    args: list[str]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    timed_out: bool = Field(default=False)

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def describe(self) -> str:
        if self.timed_out:
            return f"git {self.args[0]} timed out after {self.duration:.0f}s"
        detail = self.stderr.strip().splitlines()[-1] if self.stderr.strip() else f"exit {self.returncode}"
        return f"git {self.args[0]} failed: {detail}"


class GitSource(RepositorySource):
    """
    Source that refreshes each rig with git before reading it.

    Modes:
    - ``local_only``: read the working tree, no network
    - ``fetch``: clone if needed, ``git fetch``, read the file at ``origin/<branch>``
    - ``pull``: clone if needed, ``git pull --ff-only``, read the working tree

    Example:
        >>> source = GitSource(sync_mode=SyncMode.FETCH, timeout=60)
        >>> result = await source.fetch(rig)
        >>> print(result.revision)
    """

    name = "git"

    def __init__(
        self,
        sync_mode: SyncMode = SyncMode.FETCH,
        timeout: int = 120,
        binary: str = "git",
    ):
        self.sync_mode = sync_mode
        self.timeout = timeout
        self.binary = binary
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def is_available(self) -> bool:
        """Check if the git binary is available in PATH."""
        return shutil.which(self.binary) is not None

    def _lock_for(self, rig: Rig) -> asyncio.Lock:
        lock = self._locks.get(rig.name)
        if lock is None:
            lock = self._locks[rig.name] = asyncio.Lock()
        return lock

    async def run_git(
        self,
        args: list[str],
        cwd: Path | None = None,
        auth: list[str] | None = None,
    ) -> GitCommandResult:
        """
        Run one git command with the configured timeout.

        Args:
            args: Git arguments, starting with the subcommand
            cwd: Working directory
            auth: ``-c`` arguments placed before the subcommand

        Returns:
            GitCommandResult (never raises for non-zero exits or timeouts)
        """
        command = [self.binary, *(auth or []), *args]
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        start_time = time.time()

        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd) if cwd else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except FileNotFoundError:
            return GitCommandResult(
                args=args,
                returncode=127,
                stderr=f"git binary '{self.binary}' not found",
            )

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            return GitCommandResult(
                args=args,
                returncode=-1,
                duration=time.time() - start_time,
                timed_out=True,
            )

        return GitCommandResult(
            args=args,
            returncode=proc.returncode or 0,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            duration=time.time() - start_time,
        )

    async def fetch(self, rig: Rig) -> FetchResult:
        async with self._lock_for(rig):
            if self.sync_mode == SyncMode.LOCAL_ONLY:
                return await self._read_working_tree(rig)

            credentials = await asyncio.to_thread(resolve_credentials, rig)
            auth = git_auth_args(credentials)

            await self._clone_if_needed(rig, auth)

            if self.sync_mode == SyncMode.PULL:
                return await self._pull(rig, auth)
            return await self._fetch_remote(rig, auth)

    async def _clone_if_needed(self, rig: Rig, auth: list[str]) -> None:
        if (rig.path / ".git").exists():
            return
        if not rig.remote:
            raise SourceUnreachable(rig.name, f"{rig.path} is not a git clone and no remote is configured")

        logger.info("Cloning rig %s from %s into %s", rig.name, rig.remote, rig.path)
        rig.path.parent.mkdir(parents=True, exist_ok=True)
        result = await self.run_git(
            ["clone", "--branch", rig.branch, rig.remote, str(rig.path)],
            auth=auth,
        )
        if not result.ok:
            raise SourceUnreachable(rig.name, result.describe())

    async def _fetch_remote(self, rig: Rig, auth: list[str]) -> FetchResult:
        result = await self.run_git(["fetch", "--quiet", "origin", rig.branch], cwd=rig.path, auth=auth)
        if not result.ok:
            raise SourceUnreachable(rig.name, result.describe())

        ref = f"refs/remotes/origin/{rig.branch}"
        revision = await self._rev_parse(rig, ref)

        show = await self.run_git(
            ["show", f"{revision}:{BEADS_DIR}/{ISSUES_FILE}"],
            cwd=rig.path,
        )
        if not show.ok:
            if any(marker in show.stderr for marker in MISSING_PATH_MARKERS):
                raise SourceUninitialized(rig.name, f"no {BEADS_DIR}/{ISSUES_FILE} at {revision[:12]}")
            raise SourceUnreachable(rig.name, show.describe())

        logger.debug("Fetched rig %s at %s", rig.name, revision[:12], extra={"rig": rig.name, "revision": revision})
        return FetchResult(content=show.stdout, revision=revision)

    async def _pull(self, rig: Rig, auth: list[str]) -> FetchResult:
        result = await self.run_git(["pull", "--ff-only", "--quiet", "origin", rig.branch], cwd=rig.path, auth=auth)
        if not result.ok:
            raise SourceUnreachable(rig.name, result.describe())

        revision = await self._rev_parse(rig, "HEAD")
        local = await asyncio.to_thread(read_issues_file, rig)
        return FetchResult(content=local.content, revision=revision)

    async def _read_working_tree(self, rig: Rig) -> FetchResult:
        local = await asyncio.to_thread(read_issues_file, rig)
        if not (rig.path / ".git").exists():
            return local
        head = await self.run_git(["rev-parse", "HEAD"], cwd=rig.path)
        if head.ok and head.stdout.strip():
            return FetchResult(content=local.content, revision=head.stdout.strip())
        return local

    async def _rev_parse(self, rig: Rig, ref: str) -> str:
        result = await self.run_git(["rev-parse", ref], cwd=rig.path)
        if not result.ok or not result.stdout.strip():
            raise SourceUnreachable(rig.name, result.describe())
        return result.stdout.strip()
