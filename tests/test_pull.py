"""Tests for the pull-with-safety-net workflow."""

import pytest

from ledger.git.runner import GitExecutor
from ledger.lib.config import LedgerConfig
from ledger.workflow.pull import NO_UPSTREAM_MESSAGE, PullWorkflow

from conftest import FakeGit, commit_all, git, write


def script_pull(fake_git, behind=2, dirty=True):
    fake_git.respond("branch", "--show-current", stdout="main\n")
    fake_git.respond("rev-list", "--left-right", "--count", stdout=f"{behind}\t0\n")
    fake_git.respond("status", "--porcelain", stdout=" M a.txt\n?? new.txt\n" if dirty else "")
    return fake_git


def position(calls, *prefix):
    for i, call in enumerate(calls):
        if call[:len(prefix)] == list(prefix):
            return i
    raise AssertionError(f"{prefix} never ran")


class TestPullUnit:
    """Command sequencing against a scripted executor."""

    def test_up_to_date_takes_no_stash(self, fake_git, config):
        script_pull(fake_git, behind=0)
        wf = PullWorkflow(fake_git, config, "repo")
        result = wf.run()

        assert result.success
        assert result.message == "Already up to date"
        assert not result.auto_stashed
        assert fake_git.commands("stash") == []
        assert fake_git.commands("pull") == []
        assert wf.history[-2:] == ["up_to_date", "done"]

    def test_clean_tree_pulls_without_stash(self, fake_git, config):
        script_pull(fake_git, behind=2, dirty=False)
        result = PullWorkflow(fake_git, config).run()

        assert result.success
        assert result.message == "Pulled 2 commits from origin"
        assert fake_git.commands("stash") == []
        assert fake_git.commands("pull") == [["pull", "--rebase", "origin", "main"]]

    def test_dirty_tree_stashed_and_restored(self, fake_git, config):
        script_pull(fake_git, behind=1)
        wf = PullWorkflow(fake_git, config)
        result = wf.run()

        assert result.success
        assert result.auto_stashed
        assert result.stash_ref is None
        assert "restored your uncommitted changes" in result.message
        assert fake_git.stashes == []

        [push] = fake_git.commands("stash", "push")
        assert "--include-untracked" in push
        assert push[-1].startswith(config.stash_label + " ")
        assert wf.safety_net.consumed
        assert (position(fake_git.calls, "stash", "push")
                < position(fake_git.calls, "pull")
                < position(fake_git.calls, "stash", "pop"))

    def test_labels_are_unique_per_run(self, config):
        labels = []
        for _ in range(2):
            fake = script_pull(FakeGit())
            PullWorkflow(fake, config).run()
            labels.append(fake.commands("stash", "push")[0][-1])
        assert labels[0] != labels[1]

    def test_pops_own_stash_after_refs_shift(self, fake_git, config):
        script_pull(fake_git)

        def someone_else_stashes(args):
            if args[0] == "pull":
                fake_git.stashes.insert(0, "someone else's work")

        fake_git.on_command = someone_else_stashes
        result = PullWorkflow(fake_git, config).run()

        assert result.success
        assert fake_git.commands("stash", "pop") == [["stash", "pop", "stash@{1}"]]
        assert fake_git.stashes == ["someone else's work"]

    def test_restore_conflict_keeps_stash(self, fake_git, config):
        script_pull(fake_git)
        fake_git.respond("stash", "pop", returncode=1,
                         stdout="CONFLICT (content): Merge conflict in a.txt\n")
        fake_git.respond("diff", "--name-only", "--diff-filter=U", stdout="a.txt\n")

        result = PullWorkflow(fake_git, config).run()

        assert result.success
        assert result.had_conflicts
        assert result.auto_stashed
        assert result.conflicted_files == ["a.txt"]
        assert result.stash_ref == "stash@{0}"
        assert "git stash drop stash@{0}" in result.message
        assert len(fake_git.stashes) == 1

    def test_restore_failure_reports_stash(self, fake_git, config):
        script_pull(fake_git)
        fake_git.respond("stash", "pop", returncode=1,
                         stderr="error: could not restore untracked files from stash\n")

        wf = PullWorkflow(fake_git, config)
        result = wf.run()

        assert result.success
        assert not result.had_conflicts
        assert result.stash_ref == "stash@{0}"
        assert "git stash pop stash@{0}" in result.message
        assert wf.safety_net.left_behind

    def test_pull_conflict_aborts_then_restores(self, fake_git, config):
        script_pull(fake_git)
        fake_git.respond("pull", returncode=1, stdout=(
            "CONFLICT (content): Merge conflict in a.txt\n"
            "error: could not apply 1234abc... local change\n"
        ))

        wf = PullWorkflow(fake_git, config)
        result = wf.run()

        assert not result.success
        assert result.had_conflicts
        assert result.auto_stashed
        assert result.stash_ref is None
        assert fake_git.stashes == []
        assert position(fake_git.calls, "rebase", "--abort") < position(fake_git.calls, "stash", "pop")
        assert wf.state == "failed"

    def test_pull_failure_restores_and_reports(self, fake_git, config):
        script_pull(fake_git)
        fake_git.respond("pull", returncode=1,
                         stderr="fatal: unable to access 'https://example.com/repo.git/': Could not resolve host\n")

        result = PullWorkflow(fake_git, config).run()

        assert not result.success
        assert result.message.startswith("Pull failed: fatal: unable to access")
        assert fake_git.commands("rebase") == []
        assert fake_git.stashes == []

    def test_pull_failure_with_unrestorable_stash(self, fake_git, config):
        script_pull(fake_git)
        fake_git.respond("pull", returncode=1, stderr="fatal: network down\n")
        fake_git.respond("stash", "pop", returncode=1, stderr="error: local changes would be overwritten\n")

        result = PullWorkflow(fake_git, config).run()

        assert not result.success
        assert result.stash_ref == "stash@{0}"
        assert "still in the stash (stash@{0})" in result.message

    def test_missing_remote_branch_is_success(self, fake_git, config):
        script_pull(fake_git)
        fake_git.respond("fetch", returncode=128, stderr="fatal: couldn't find remote ref main\n")

        result = PullWorkflow(fake_git, config).run()

        assert result.success
        assert result.message == NO_UPSTREAM_MESSAGE
        assert fake_git.commands("stash") == []

    def test_fetch_failure(self, fake_git, config):
        script_pull(fake_git)
        fake_git.respond("fetch", returncode=128, stderr="fatal: Could not read from remote repository.\n")

        result = PullWorkflow(fake_git, config).run()

        assert not result.success
        assert result.message.startswith("Fetch from origin failed")

    def test_falls_back_to_fetch_head(self, fake_git, config):
        script_pull(fake_git, behind=0)
        fake_git.respond("rev-parse", "--verify", "--quiet", "refs/remotes/origin/main", returncode=1)

        PullWorkflow(fake_git, config).run()

        assert ["rev-list", "--left-right", "--count", "FETCH_HEAD...HEAD"] in fake_git.calls

    def test_detached_head(self, fake_git, config):
        fake_git.respond("branch", "--show-current", stdout="")
        result = PullWorkflow(fake_git, config).run()
        assert not result.success
        assert "detached" in result.message
        assert fake_git.commands("fetch") == []

    def test_stash_failure_stops_before_pull(self, fake_git, config):
        script_pull(fake_git)
        fake_git.respond("stash", "push", returncode=1, stderr="error: cannot stash\n")

        result = PullWorkflow(fake_git, config).run()

        assert not result.success
        assert "Could not stash" in result.message
        assert fake_git.commands("pull") == []

    def test_custom_remote(self, fake_git):
        script_pull(fake_git, behind=1, dirty=False)
        result = PullWorkflow(fake_git, LedgerConfig(remote="upstream")).run()
        assert fake_git.commands("fetch") == [["fetch", "upstream", "main"]]
        assert result.message == "Pulled 1 commit from upstream"


class TestPullIntegration:
    """Against real repositories with a bare origin."""

    def run_pull(self, repo, calls=None):
        executor = GitExecutor(repo, on_command=calls.append if calls is not None else None)
        return PullWorkflow(executor, LedgerConfig(), repo.name).run()

    def test_safety_net_round_trip(self, remote):
        incoming = remote.push_from_other("notes.txt", "alpha\nbeta\ngamma\n")
        write(remote.work / "shared.txt", "one\ntwo changed\nthree\n")
        write(remote.work / "scratch.txt", "untracked work\n")
        diff_before = git(remote.work, "diff")

        result = self.run_pull(remote.work)

        assert result.success, result.message
        assert result.auto_stashed
        assert git(remote.work, "rev-parse", "HEAD").strip() == incoming
        assert git(remote.work, "diff") == diff_before
        assert (remote.work / "scratch.txt").read_text() == "untracked work\n"
        assert git(remote.work, "stash", "list") == ""

    def test_up_to_date_is_a_no_op(self, remote):
        write(remote.work / "shared.txt", "dirty\n")
        calls = []

        result = self.run_pull(remote.work, calls)

        assert result.success
        assert result.message == "Already up to date"
        assert not [c for c in calls if c[0] == "stash"]
        assert (remote.work / "shared.txt").read_text() == "dirty\n"

    def test_conflicting_restore(self, remote):
        remote.push_from_other("shared.txt", "one\nTWO remote\nthree\n")
        write(remote.work / "shared.txt", "one\nTWO local\nthree\n")

        result = self.run_pull(remote.work)

        assert result.success
        assert result.had_conflicts
        assert result.conflicted_files == ["shared.txt"]
        assert result.stash_ref == "stash@{0}"
        assert "<<<<<<<" in (remote.work / "shared.txt").read_text()
        assert len(git(remote.work, "stash", "list").splitlines()) == 1

    def test_rebase_conflict_leaves_branch_as_it_was(self, remote):
        remote.push_from_other("shared.txt", "one\nTWO remote\nthree\n")
        write(remote.work / "shared.txt", "one\nTWO local\nthree\n")
        local = commit_all(remote.work, "local change")
        write(remote.work / "scratch.txt", "untracked work\n")

        result = self.run_pull(remote.work)

        assert not result.success
        assert result.had_conflicts
        assert result.auto_stashed
        assert git(remote.work, "rev-parse", "HEAD").strip() == local
        assert not (remote.work / ".git" / "rebase-merge").exists()
        assert not (remote.work / ".git" / "rebase-apply").exists()
        assert (remote.work / "scratch.txt").read_text() == "untracked work\n"
        assert git(remote.work, "stash", "list") == ""

    def test_unpushed_branch(self, remote):
        git(remote.work, "checkout", "-q", "-b", "feature")

        result = self.run_pull(remote.work)

        assert result.success
        assert result.message == NO_UPSTREAM_MESSAGE


@pytest.mark.parametrize("behind,expected", [(1, "1 commit"), (3, "3 commits")])
def test_commit_count_wording(fake_git, config, behind, expected):
    script_pull(fake_git, behind=behind, dirty=False)
    assert expected in PullWorkflow(fake_git, config).run().message
