"""索引仓库来源适配器

职责:
- 定义索引来源协议 IndexSource（同步、列出文件、按 ref 读取内容）
- GitIndexSource: 基于 git 命令行的默认实现

所有 git 调用经由 CommandExecutor，测试可注入假实现。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from dtsm.core.exceptions import ExecutionError
from dtsm.utils.net import validate_ref, validate_repo_url
from dtsm.utils.shell import CommandExecutor, LocalExecutor, run_checked

logger = logging.getLogger(__name__)

DECLARATION_SUFFIX = ".d.ts"


class IndexSource(Protocol):
    """索引来源协议"""

    @property
    def url(self) -> str: ...

    @property
    def ref(self) -> str: ...

    def is_synced(self) -> bool:
        """本地是否已有索引 checkout"""
        ...

    def sync(self) -> str:
        """clone 或更新索引，返回同步后的 HEAD commit"""
        ...

    def head(self) -> str:
        """当前 HEAD commit"""
        ...

    def list_files(self) -> list[str]:
        """HEAD 下的全部声明文件标识"""
        ...

    def read_file(self, identifier: str, ref: str) -> str:
        """读取 ref 下某个文件的内容，不存在时抛 FileNotFoundError"""
        ...

    def blob_id(self, identifier: str, ref: str) -> str | None:
        """ref 下某个文件的内容指纹，不存在返回 None"""
        ...


class GitIndexSource:
    """Git 仓库索引来源"""

    def __init__(
        self,
        url: str,
        ref: str,
        checkout_dir: Path,
        executor: CommandExecutor | None = None,
        timeout: int = 600,
    ) -> None:
        validate_repo_url(url, context="index repo")
        validate_ref(ref)
        self._url = url
        self._ref = ref
        self.checkout_dir = Path(checkout_dir)
        self.executor = executor or LocalExecutor()
        self.timeout = timeout

    @property
    def url(self) -> str:
        return self._url

    @property
    def ref(self) -> str:
        return self._ref

    def is_synced(self) -> bool:
        return (self.checkout_dir / ".git").exists()

    def sync(self) -> str:
        """Clone 或 fetch 索引仓库，需要完整历史以便按旧 ref 回放"""
        if self.is_synced():
            logger.info("更新索引: %s@%s", self._url, self._ref)
            self._git(["fetch", "origin", self._ref], label="git fetch")
            self._git(["checkout", "-q", "--detach", "FETCH_HEAD"], label="git checkout")
        else:
            logger.info("克隆索引: %s@%s -> %s", self._url, self._ref, self.checkout_dir)
            self.checkout_dir.parent.mkdir(parents=True, exist_ok=True)
            r = self.executor.execute(
                ["git", "clone", "--branch", self._ref, "--", self._url, str(self.checkout_dir)],
                cwd=str(self.checkout_dir.parent), timeout=self.timeout,
            )
            if not r.success:
                # 回退: ref 可能是 commit，完整 clone 后再 checkout
                run_checked(
                    self.executor,
                    ["git", "clone", "--", self._url, str(self.checkout_dir)],
                    cwd=str(self.checkout_dir.parent), label="git clone",
                    timeout=self.timeout,
                )
                self._git(["checkout", "-q", "--detach", self._ref], label="git checkout")
        sha = self.head()
        logger.info("索引就绪: %s", sha[:12])
        return sha

    def head(self) -> str:
        return self._git(["rev-parse", "HEAD"], label="git rev-parse").strip()

    def list_files(self) -> list[str]:
        out = self._git(["ls-tree", "-r", "-z", "--name-only", "HEAD"], label="git ls-tree")
        return [p for p in out.split("\0") if p.endswith(DECLARATION_SUFFIX)]

    def read_file(self, identifier: str, ref: str) -> str:
        validate_ref(ref)
        r = self.executor.execute(
            ["git", "show", f"{ref}:{identifier}"],
            cwd=str(self.checkout_dir), timeout=self.timeout,
        )
        if not r.success:
            raise FileNotFoundError(f"{identifier}@{ref}: {r.stderr.strip()[:300]}")
        return r.stdout

    def blob_id(self, identifier: str, ref: str) -> str | None:
        validate_ref(ref)
        r = self.executor.execute(
            ["git", "rev-parse", "--verify", "--quiet", f"{ref}:{identifier}"],
            cwd=str(self.checkout_dir), timeout=self.timeout,
        )
        return r.stdout.strip() if r.success else None

    def _git(self, args: list[str], *, label: str) -> str:
        if not self.is_synced():
            raise ExecutionError(f"索引目录不是 git 仓库: {self.checkout_dir}")
        r = run_checked(
            self.executor, ["git", *args],
            cwd=str(self.checkout_dir), label=label, timeout=self.timeout,
        )
        return r.stdout
