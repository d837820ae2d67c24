"""Git repository abstraction.

Typed operations over the `git` executable. Every method goes through the
injected process runner and returns a Result; a non-zero exit becomes a
GitError carrying the operation name and git's stderr.

Usage:
    repo = Repository(Path.cwd())

    match repo.merge("feat/login"):
        case Ok(_):
            print("merged")
        case Err(e) if repo.has_merge_conflicts():
            print("conflict:", e.message)
        case Err(e):
            print(f"{e.operation} failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal

from bm.core.result import Err, Ok, Result
from bm.platform.process import ProcessResult, Runner
from bm.platform.process import run as run_process

from .remote import derive_identity

__all__ = [
    "CONFLICT_MARKERS",
    "DETACHED_HEAD",
    "GitError",
    "GitStatus",
    "PullOutcome",
    "Repository",
    "StatusEntry",
]

DETACHED_HEAD = "HEAD"
DEFAULT_REMOTE = "origin"

# Porcelain XY codes for unmerged paths that need manual resolution.
CONFLICT_MARKERS = frozenset({"UU", "AA", "DD"})


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        kind: not_a_repository | no_remote | operation_failed
        operation: The git operation that failed (e.g. "merge")
        message: git's stderr, or a fallback description
        returncode: Process return code
    """

    kind: Literal["not_a_repository", "no_remote", "operation_failed"]
    operation: str
    message: str
    returncode: int = 1


class PullOutcome(Enum):
    UPDATED = "updated"
    UP_TO_DATE = "up_to_date"


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in `git status --porcelain`.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??", "UU")
        path: File path
    """

    xy: str
    path: str

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"

    @property
    def is_conflicted(self) -> bool:
        return self.xy in CONFLICT_MARKERS


@dataclass(frozen=True, slots=True)
class GitStatus:
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return len(self.entries) == 0

    @property
    def conflicted(self) -> list[StatusEntry]:
        return [e for e in self.entries if e.is_conflicted]

    @property
    def has_conflicts(self) -> bool:
        return any(e.is_conflicted for e in self.entries)


class Repository:
    """Git operations for the repository containing `path`.

    Attributes:
        path: Working directory git commands run in
    """

    def __init__(self, path: Path, runner: Runner = run_process, remote: str = DEFAULT_REMOTE) -> None:
        self.path = path
        self.remote = remote
        self._runner = runner

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_repository(self) -> bool:
        return self._run(["rev-parse", "--git-dir"]).ok

    def current_branch(self) -> Result[str, GitError]:
        """Name of the checked-out branch.

        Returns the literal DETACHED_HEAD ("HEAD") when not on a branch.
        """
        proc = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        if not proc.ok:
            return Err(self._query_error("current branch", proc))
        return Ok(proc.stdout.strip())

    def identity(self) -> Result[str, GitError]:
        """Repository identity derived from the configured remote."""
        proc = self._run(["remote", "get-url", self.remote])
        if not proc.ok:
            if not self.is_repository():
                return Err(self._query_error("remote get-url", proc))
            return Err(
                GitError(
                    kind="no_remote",
                    operation="remote get-url",
                    message=f"no '{self.remote}' remote configured",
                    returncode=proc.returncode,
                )
            )
        identity = derive_identity(proc.stdout)
        if not identity:
            return Err(
                GitError(
                    kind="no_remote",
                    operation="remote get-url",
                    message=f"'{self.remote}' remote has an empty URL",
                )
            )
        return Ok(identity)

    def status(self) -> Result[GitStatus, GitError]:
        """Runs `git status --porcelain=v1` and parses the entries."""
        proc = self._run(["status", "--porcelain=v1"])
        if not proc.ok:
            return Err(self._query_error("status", proc))
        return Ok(self._parse_status(proc.stdout))

    def has_uncommitted_changes(self) -> Result[bool, GitError]:
        return self.status().map(lambda s: not s.is_clean)

    def has_merge_conflicts(self) -> bool:
        """True if the index holds unresolved UU/AA/DD paths.

        Returns False if status cannot be determined.
        """
        result = self.status()
        match result:
            case Ok(status):
                return status.has_conflicts
            case Err(_):
                return False

    def is_merging(self) -> bool:
        """True while a merge is in progress (MERGE_HEAD exists).

        Covers every unmerged state, including modify/delete conflicts that
        porcelain reports as `UD` / `DU`.
        """
        return self._run(["rev-parse", "-q", "--verify", "MERGE_HEAD"]).ok

    def head_sha(self) -> Result[str, GitError]:
        proc = self._run(["rev-parse", "HEAD"])
        if not proc.ok:
            return Err(self._query_error("rev-parse HEAD", proc))
        return Ok(proc.stdout.strip())

    def local_branches(self) -> Result[set[str], GitError]:
        proc = self._run(["branch", "--format=%(refname:short)"])
        if not proc.ok:
            return Err(self._query_error("branch", proc))
        names = set()
        for raw in proc.stdout.splitlines():
            name = raw.strip()
            # "(HEAD detached at ...)" is listed when not on a branch
            if not name or name.startswith("("):
                continue
            names.add(name)
        return Ok(names)

    def remote_branches(self) -> Result[set[str], GitError]:
        """Branch names on the remote, without the `origin/` prefix."""
        proc = self._run(["branch", "-r", "--format=%(refname:short)"])
        if not proc.ok:
            return Err(self._query_error("branch -r", proc))
        prefix = f"{self.remote}/"
        names = set()
        for raw in proc.stdout.splitlines():
            ref = raw.strip()
            if not ref.startswith(prefix) or ref.endswith("/HEAD"):
                continue
            names.add(ref[len(prefix) :])
        return Ok(names)

    def has_local_branch(self, branch: str) -> bool:
        return branch in self.local_branches().unwrap_or(set())

    def has_remote_branch(self, branch: str) -> bool:
        return branch in self.remote_branches().unwrap_or(set())

    def is_valid_branch_name(self, branch: str) -> bool:
        """Checks `branch` with `git check-ref-format --branch`."""
        if not branch or branch.startswith("-"):
            return False
        return self._run(["check-ref-format", "--branch", branch]).ok

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def fetch(self, *, prune: bool = False) -> Result[None, GitError]:
        args = ["fetch", self.remote]
        if prune:
            args.append("--prune")
        return self._mutate("fetch", args)

    def checkout(self, branch: str) -> Result[None, GitError]:
        return self._mutate("checkout", ["checkout", branch])

    def checkout_remote(self, branch: str) -> Result[None, GitError]:
        """Create local `branch` tracking `origin/branch` and switch to it."""
        return self._mutate(
            "checkout",
            ["checkout", "-b", branch, "--track", f"{self.remote}/{branch}"],
        )

    def create_and_checkout(self, new_branch: str, from_branch: str) -> Result[None, GitError]:
        return self._mutate("checkout -b", ["checkout", "-b", new_branch, from_branch])

    def pull(self, branch: str) -> Result[PullOutcome, GitError]:
        """Pull `branch` from the remote into the current branch.

        Up-to-date is detected by comparing HEAD before and after, so the
        outcome does not depend on git's (localized) progress messages.
        """
        before = self.head_sha().unwrap_or("")
        result = self._mutate(
            "pull",
            ["pull", "--no-rebase", "--no-edit", self.remote, branch],
        )
        if isinstance(result, Err):
            return result
        after = self.head_sha().unwrap_or("")
        if before and before == after:
            return Ok(PullOutcome.UP_TO_DATE)
        return Ok(PullOutcome.UPDATED)

    def merge(self, branch: str) -> Result[None, GitError]:
        return self._mutate("merge", ["merge", "--no-edit", branch])

    def abort_merge(self) -> Result[None, GitError]:
        return self._mutate("merge --abort", ["merge", "--abort"])

    def continue_merge(self) -> Result[None, GitError]:
        """Conclude a merge whose conflicts the operator resolved and staged."""
        return self._mutate("commit", ["commit", "--no-edit"])

    def push(self, branch: str | None = None) -> Result[None, GitError]:
        args = ["push", self.remote, branch] if branch else ["push"]
        return self._mutate("push", args)

    def delete_branch(self, branch: str) -> Result[None, GitError]:
        """Force-delete a local branch (`git branch -D`)."""
        return self._mutate("branch -D", ["branch", "-D", branch])

    def commit_all(self, message: str) -> Result[None, GitError]:
        """Stage every change (including untracked files) and commit."""
        staged = self._mutate("add", ["add", "-A"])
        if isinstance(staged, Err):
            return staged
        return self._mutate("commit", ["commit", "-m", message])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(self, args: list[str]) -> ProcessResult:
        return self._runner(["git", *args], self.path)

    def _mutate(self, operation: str, args: list[str]) -> Result[None, GitError]:
        proc = self._run(args)
        if proc.ok:
            return Ok(None)
        return Err(
            GitError(
                kind="operation_failed",
                operation=operation,
                message=_failure_text(proc) or f"git {operation} failed",
                returncode=proc.returncode,
            )
        )

    def _query_error(self, operation: str, proc: ProcessResult) -> GitError:
        stderr = proc.stderr.strip()
        if "not a git repository" in stderr.lower():
            return GitError(
                kind="not_a_repository",
                operation=operation,
                message="current directory is not a git repository",
                returncode=proc.returncode,
            )
        return GitError(
            kind="operation_failed",
            operation=operation,
            message=stderr or f"git {operation} failed",
            returncode=proc.returncode,
        )

    def _parse_status(self, output: str) -> GitStatus:
        entries: list[StatusEntry] = []
        for line in output.splitlines():
            if len(line) < 4:
                continue
            entries.append(StatusEntry(xy=line[:2], path=line[3:]))
        return GitStatus(entries=tuple(entries))


def _failure_text(proc: ProcessResult) -> str:
    """stderr plus any `CONFLICT` lines, which merge and pull print on stdout."""
    stdout_lines = proc.stdout.splitlines()
    conflicts = [line.strip() for line in stdout_lines if line.startswith("CONFLICT")]
    parts = [proc.stderr.strip(), *conflicts]
    text = "\n".join(p for p in parts if p)
    return text or proc.stdout.strip()
