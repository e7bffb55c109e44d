"""GitIndexSource 测试 - 注入记录型执行器，不调用真实 git"""

from __future__ import annotations

from pathlib import Path

import pytest

from dtsm.core.dep.sources import GitIndexSource
from dtsm.core.exceptions import ExecutionError, ValidationError
from dtsm.utils.shell import CommandResult

URL = "https://github.com/DefinitelyTyped/DefinitelyTyped.git"

OK = CommandResult(returncode=0, stdout="", stderr="")
FAIL = CommandResult(returncode=128, stdout="", stderr="fatal: bad revision")


class RecordingExecutor:
    """按 git 子命令排队返回预设结果；clone 成功时创建 .git 目录"""

    def __init__(self, outputs: dict[str, list[CommandResult]] | None = None) -> None:
        self.calls: list[list[str]] = []
        self.outputs = outputs or {}

    def execute(self, cmd: list[str], *, cwd: str = ".", timeout: int | None = None) -> CommandResult:
        self.calls.append(cmd)
        queue = self.outputs.get(cmd[1])
        r = queue.pop(0) if queue else OK
        if cmd[1] == "clone" and r.success:
            (Path(cmd[-1]) / ".git").mkdir(parents=True)
        return r


def _out(stdout: str) -> CommandResult:
    return CommandResult(returncode=0, stdout=stdout, stderr="")


@pytest.fixture()
def checkout(tmp_path: Path) -> Path:
    return tmp_path / "repos" / "DefinitelyTyped"


class TestSync:
    def test_clone_when_missing(self, checkout: Path) -> None:
        ex = RecordingExecutor({"rev-parse": [_out("abc123\n")]})
        src = GitIndexSource(URL, "master", checkout, executor=ex)
        assert not src.is_synced()

        assert src.sync() == "abc123"
        assert ex.calls[0] == ["git", "clone", "--branch", "master", "--", URL, str(checkout)]
        assert src.is_synced()

    def test_clone_fallback_for_commit_ref(self, checkout: Path) -> None:
        ref = "0123456789abcdef"
        ex = RecordingExecutor({"clone": [FAIL], "rev-parse": [_out(ref + "\n")]})
        GitIndexSource(URL, ref, checkout, executor=ex).sync()
        assert ["git", "clone", "--", URL, str(checkout)] in ex.calls
        assert ["git", "checkout", "-q", "--detach", ref] in ex.calls

    def test_fetch_when_present(self, checkout: Path) -> None:
        (checkout / ".git").mkdir(parents=True)
        ex = RecordingExecutor({"rev-parse": [_out("def456\n")]})
        assert GitIndexSource(URL, "master", checkout, executor=ex).sync() == "def456"
        assert ex.calls[:2] == [
            ["git", "fetch", "origin", "master"],
            ["git", "checkout", "-q", "--detach", "FETCH_HEAD"],
        ]

    def test_fetch_failure_raises(self, checkout: Path) -> None:
        (checkout / ".git").mkdir(parents=True)
        ex = RecordingExecutor({"fetch": [FAIL]})
        with pytest.raises(ExecutionError, match="git fetch失败"):
            GitIndexSource(URL, "master", checkout, executor=ex).sync()

    def test_head_requires_checkout(self, checkout: Path) -> None:
        with pytest.raises(ExecutionError, match="不是 git 仓库"):
            GitIndexSource(URL, "master", checkout, executor=RecordingExecutor()).head()


class TestRead:
    @pytest.fixture()
    def synced(self, checkout: Path) -> Path:
        (checkout / ".git").mkdir(parents=True)
        return checkout

    def test_list_files_filters_declarations(self, synced: Path) -> None:
        ex = RecordingExecutor({"ls-tree": [_out("a/a.d.ts\0README.md\0b/b.d.ts\0")]})
        assert GitIndexSource(URL, "master", synced, executor=ex).list_files() == [
            "a/a.d.ts", "b/b.d.ts",
        ]

    def test_read_file_at_ref(self, synced: Path) -> None:
        ex = RecordingExecutor({"show": [_out("declare var $: any;\n")]})
        src = GitIndexSource(URL, "master", synced, executor=ex)
        assert src.read_file("jquery/jquery.d.ts", "abc123") == "declare var $: any;\n"
        assert ex.calls[-1] == ["git", "show", "abc123:jquery/jquery.d.ts"]

    def test_read_missing_file(self, synced: Path) -> None:
        ex = RecordingExecutor({"show": [FAIL]})
        with pytest.raises(FileNotFoundError, match="jquery/jquery.d.ts@abc123"):
            GitIndexSource(URL, "master", synced, executor=ex).read_file(
                "jquery/jquery.d.ts", "abc123",
            )

    def test_blob_id(self, synced: Path) -> None:
        ex = RecordingExecutor({"rev-parse": [_out("f00d\n"), FAIL]})
        src = GitIndexSource(URL, "master", synced, executor=ex)
        assert src.blob_id("q/Q.d.ts", "abc123") == "f00d"
        assert src.blob_id("q/Q.d.ts", "abc123") is None

    def test_read_rejects_option_like_ref(self, synced: Path) -> None:
        src = GitIndexSource(URL, "master", synced, executor=RecordingExecutor())
        with pytest.raises(ValidationError):
            src.read_file("q/Q.d.ts", "--output=/tmp/x")


class TestConstruction:
    @pytest.mark.parametrize("url", ["-oProxyCommand=x", "ftp://example.com/repo.git", ""])
    def test_bad_url(self, checkout: Path, url: str) -> None:
        with pytest.raises(ValidationError):
            GitIndexSource(url, "master", checkout)

    def test_bad_ref(self, checkout: Path) -> None:
        with pytest.raises(ValidationError):
            GitIndexSource(URL, "--upload-pack=evil", checkout)
