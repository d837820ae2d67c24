"""Tests for git/repository.py."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from bm.core.result import Err, Ok
from bm.git.repository import GitStatus, PullOutcome, Repository, StatusEntry


# =============================================================================
# StatusEntry / GitStatus
# =============================================================================


class TestStatusEntry:
    def test_conflict_markers(self) -> None:
        for xy in ("UU", "AA", "DD"):
            assert StatusEntry(xy=xy, path="f").is_conflicted is True

    def test_regular_changes_are_not_conflicts(self) -> None:
        for xy in ("M ", " M", "A ", "??", "UD"):
            assert StatusEntry(xy=xy, path="f").is_conflicted is False

    def test_untracked(self) -> None:
        assert StatusEntry(xy="??", path="new.py").is_untracked is True


class TestGitStatus:
    def test_clean(self) -> None:
        status = GitStatus()
        assert status.is_clean is True
        assert status.has_conflicts is False

    def test_conflicted_entries(self) -> None:
        status = GitStatus(
            entries=(
                StatusEntry(xy="UU", path="a.py"),
                StatusEntry(xy="M ", path="b.py"),
            )
        )
        assert status.is_clean is False
        assert status.has_conflicts is True
        assert [e.path for e in status.conflicted] == ["a.py"]


# =============================================================================
# Repository - mocked subprocess
# =============================================================================


def make_completed_process(
    stdout: str = "",
    stderr: str = "",
    returncode: int = 0,
) -> subprocess.CompletedProcess[str]:
    """Create a mock CompletedProcess."""
    return subprocess.CompletedProcess(
        args=["git"],
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
    )


def _argv(mock_run: MagicMock, index: int = -1) -> list[str]:
    return mock_run.call_args_list[index].args[0]


class TestRepository:
    @patch("subprocess.run")
    def test_current_branch(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="feat/x\n")

        assert Repository(tmp_path).current_branch() == Ok("feat/x")
        assert _argv(mock_run) == ["git", "rev-parse", "--abbrev-ref", "HEAD"]

    @patch("subprocess.run")
    def test_current_branch_outside_repository(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stderr="fatal: not a git repository (or any of the parent directories): .git\n",
            returncode=128,
        )

        result = Repository(tmp_path).current_branch()

        assert isinstance(result, Err)
        assert result.error.kind == "not_a_repository"

    @patch("subprocess.run")
    def test_identity(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="git@host:group/proj.git\n")

        assert Repository(tmp_path).identity() == Ok("host/group/proj")
        assert _argv(mock_run) == ["git", "remote", "get-url", "origin"]

    @patch("subprocess.run")
    def test_identity_without_origin(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = [
            make_completed_process(stderr="error: No such remote 'origin'\n", returncode=2),
            make_completed_process(stdout=".git\n"),
        ]

        result = Repository(tmp_path).identity()

        assert isinstance(result, Err)
        assert result.error.kind == "no_remote"

    @patch("subprocess.run")
    def test_status_parses_porcelain(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="UU app.py\n M readme.md\n?? new.txt\n")

        result = Repository(tmp_path).status()

        assert isinstance(result, Ok)
        assert [e.xy for e in result.value.entries] == ["UU", " M", "??"]
        assert result.value.conflicted[0].path == "app.py"

    @patch("subprocess.run")
    def test_has_uncommitted_changes(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="")
        assert Repository(tmp_path).has_uncommitted_changes() == Ok(False)

        mock_run.return_value = make_completed_process(stdout="?? x\n")
        assert Repository(tmp_path).has_uncommitted_changes() == Ok(True)

    @patch("subprocess.run")
    def test_local_branches_skip_detached_entry(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="(HEAD detached at 1a2b3c)\nmain\nfeat/x\n")

        assert Repository(tmp_path).local_branches() == Ok({"main", "feat/x"})

    @patch("subprocess.run")
    def test_remote_branches_strip_prefix(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stdout="origin/HEAD\norigin\norigin/main\norigin/feat/x\nupstream/other\n"
        )

        assert Repository(tmp_path).remote_branches() == Ok({"main", "feat/x"})

    @patch("subprocess.run")
    def test_pull_up_to_date_by_head_comparison(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = [
            make_completed_process(stdout="abc\n"),
            make_completed_process(stdout="Bereits aktuell.\n"),
            make_completed_process(stdout="abc\n"),
        ]

        result = Repository(tmp_path).pull("main")

        assert result == Ok(PullOutcome.UP_TO_DATE)
        assert _argv(mock_run, 1) == ["git", "pull", "--no-rebase", "--no-edit", "origin", "main"]

    @patch("subprocess.run")
    def test_pull_updated(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = [
            make_completed_process(stdout="abc\n"),
            make_completed_process(stdout="Fast-forward\n"),
            make_completed_process(stdout="def\n"),
        ]

        assert Repository(tmp_path).pull("main") == Ok(PullOutcome.UPDATED)

    @patch("subprocess.run")
    def test_mutation_failure_carries_stderr(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stderr="CONFLICT (content): Merge conflict in app.py\n",
            returncode=1,
        )

        result = Repository(tmp_path).merge("feat/x")

        assert isinstance(result, Err)
        assert result.error.kind == "operation_failed"
        assert result.error.operation == "merge"
        assert "Merge conflict" in result.error.message

    @patch("subprocess.run")
    def test_mutation_commands(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        repo = Repository(tmp_path)

        repo.merge("feat/x")
        repo.abort_merge()
        repo.continue_merge()
        repo.push("test")
        repo.delete_branch("old")
        repo.checkout_remote("test")
        repo.create_and_checkout("feat/new", "main")
        repo.fetch(prune=True)

        assert [c.args[0][1:] for c in mock_run.call_args_list] == [
            ["merge", "--no-edit", "feat/x"],
            ["merge", "--abort"],
            ["commit", "--no-edit"],
            ["push", "origin", "test"],
            ["branch", "-D", "old"],
            ["checkout", "-b", "test", "--track", "origin/test"],
            ["checkout", "-b", "feat/new", "main"],
            ["fetch", "origin", "--prune"],
        ]
        for call in mock_run.call_args_list:
            assert call.kwargs["cwd"] == str(tmp_path)

    @patch("subprocess.run")
    def test_commit_all_stages_everything(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()

        assert Repository(tmp_path).commit_all("tmp: save") == Ok(None)
        assert [c.args[0][1:] for c in mock_run.call_args_list] == [
            ["add", "-A"],
            ["commit", "-m", "tmp: save"],
        ]

    def test_option_like_branch_names_rejected(self, tmp_path: Path) -> None:
        runner = MagicMock()
        repo = Repository(tmp_path, runner=runner)

        assert repo.is_valid_branch_name("--force") is False
        assert repo.is_valid_branch_name("") is False
        runner.assert_not_called()

    @patch("subprocess.run")
    def test_is_merging_checks_merge_head(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="0123abcd\n")
        assert Repository(tmp_path).is_merging() is True
        assert _argv(mock_run) == ["git", "rev-parse", "-q", "--verify", "MERGE_HEAD"]

        mock_run.return_value = make_completed_process(returncode=1)
        assert Repository(tmp_path).is_merging() is False

    @patch("subprocess.run")
    def test_failure_keeps_conflict_lines_from_stdout(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = [
            make_completed_process(stdout="abc\n"),
            make_completed_process(
                stdout="CONFLICT (modify/delete): f.txt deleted in FETCH_HEAD and modified in HEAD.\n"
                "Automatic merge failed; fix conflicts and then commit the result.\n",
                stderr="From /srv/remote\n * branch            test       -> FETCH_HEAD\n",
                returncode=1,
            ),
        ]

        result = Repository(tmp_path).pull("test")

        assert isinstance(result, Err)
        assert "CONFLICT (modify/delete): f.txt" in result.error.message
        assert "FETCH_HEAD" in result.error.message
        assert "Automatic merge failed" not in result.error.message
