import os
import subprocess
import tempfile

import pytest

from ratchet.git import (
    GitError,
    Worktree,
    create_worktree,
    ensure_branch_exists,
    get_current_branch,
    is_git_repository,
    temp_root,
)


def _run(*args, cwd):
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


def _make_repo(path, branch="main"):
    path.mkdir()
    _run("init", cwd=path)
    _run("symbolic-ref", "HEAD", f"refs/heads/{branch}", cwd=path)
    (path / "README").write_text("base\n")
    _run("add", "README", cwd=path)
    _run("commit", "-m", "init", cwd=path)
    return path


@pytest.fixture
def git_env(monkeypatch, tmp_path):
    gitconfig = tmp_path / "gitconfig"
    gitconfig.write_text("")
    home = tmp_path / "home"
    home.mkdir()
    runner = tmp_path / "tmp"
    runner.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("RUNNER_TEMP", str(runner))
    monkeypatch.delenv("GITHUB_BASE_REF", raising=False)
    return tmp_path


@pytest.fixture
def repo(git_env, monkeypatch):
    path = _make_repo(git_env / "repo")
    monkeypatch.chdir(path)
    return path


@pytest.fixture
def cloned_with_feature(git_env, monkeypatch):
    src = _make_repo(git_env / "src")
    _run("checkout", "-b", "feature", cwd=src)
    (src / "feature.txt").write_text("feature\n")
    _run("add", "feature.txt", cwd=src)
    _run("commit", "-m", "feature", cwd=src)
    _run("checkout", "main", cwd=src)
    _run("clone", str(src), str(git_env / "dst"), cwd=git_env)
    monkeypatch.chdir(git_env / "dst")
    return git_env / "dst"


def test_temp_root_prefers_runner_temp(monkeypatch, tmp_path):
    monkeypatch.setenv("RUNNER_TEMP", str(tmp_path))
    assert temp_root() == str(tmp_path)


def test_temp_root_falls_back_to_system_temp(monkeypatch):
    monkeypatch.delenv("RUNNER_TEMP", raising=False)
    assert temp_root() == tempfile.gettempdir()


def test_is_git_repository_inside_repo(repo):
    assert is_git_repository() is True


def test_is_git_repository_outside_repo(git_env, monkeypatch):
    plain = git_env / "plain"
    plain.mkdir()
    monkeypatch.chdir(plain)
    assert is_git_repository() is False


def test_get_current_branch(repo):
    assert get_current_branch() == "main"


def test_get_current_branch_outside_repo(git_env, monkeypatch):
    plain = git_env / "plain"
    plain.mkdir()
    monkeypatch.chdir(plain)
    with pytest.raises(GitError, match="failed to get current branch"):
        get_current_branch()


def test_ensure_branch_exists_missing_without_remote(repo):
    with pytest.raises(GitError, match="failed to fetch branch missing"):
        ensure_branch_exists("missing")


def test_ensure_branch_exists_uses_github_base_ref(git_env, monkeypatch):
    path = _make_repo(git_env / "trunkrepo", branch="trunk")
    monkeypatch.chdir(path)
    monkeypatch.setenv("GITHUB_BASE_REF", "develop")
    with pytest.raises(GitError, match="failed to fetch branch develop"):
        ensure_branch_exists("main")


def test_ensure_branch_exists_fetches_remote_branch(cloned_with_feature):
    assert ensure_branch_exists("feature") is None
    check = subprocess.run(
        ["git", "rev-parse", "--verify", "origin/feature"], capture_output=True
    )
    assert check.returncode == 0
    with create_worktree("feature") as worktree:
        with open(os.path.join(worktree.path, "feature.txt")) as handle:
            assert handle.read() == "feature\n"


def test_create_worktree_from_remote_branch(cloned_with_feature):
    with create_worktree("feature") as worktree:
        assert os.path.basename(worktree.path).startswith("ratchet-worktree-")
        with open(os.path.join(worktree.path, "feature.txt")) as handle:
            assert handle.read() == "feature\n"
    assert not os.path.exists(worktree.path)


def test_create_worktree_for_other_branch(repo):
    _run("checkout", "-b", "work", cwd=repo)
    (repo / "README").write_text("changed\n")
    _run("commit", "-am", "change", cwd=repo)

    worktree = create_worktree("main")
    try:
        assert os.path.dirname(worktree.path) == temp_root()
        assert os.path.basename(worktree.path).startswith("ratchet-worktree-")
        with open(os.path.join(worktree.path, "README")) as handle:
            assert handle.read() == "base\n"
    finally:
        worktree.remove()
    assert not os.path.exists(worktree.path)


def test_create_worktree_for_checked_out_branch_detaches(repo):
    worktree = create_worktree("main")
    try:
        with open(os.path.join(worktree.path, "README")) as handle:
            assert handle.read() == "base\n"
    finally:
        worktree.remove()
    assert not os.path.exists(worktree.path)


def test_create_worktree_unknown_branch(repo):
    with pytest.raises(GitError, match="failed to create worktree"):
        create_worktree("nope")


def test_worktree_remove_missing_directory_is_quiet(repo, capsys, tmp_path):
    worktree = Worktree(str(tmp_path / "gone"))
    worktree.remove()
    err = capsys.readouterr().err
    assert "failed to remove git worktree" in err
    assert "failed to remove worktree directory" not in err