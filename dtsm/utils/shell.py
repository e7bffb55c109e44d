"""子进程执行工具

通过 CommandExecutor 协议抽象子进程执行，索引仓库的 git 操作全部经由它，
测试时注入记录型实现即可，无需 patch subprocess。
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from dtsm.core.exceptions import ExecutionError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


class CommandExecutor(Protocol):
    """命令执行器协议，抽象子进程调用"""

    def execute(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        timeout: int | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


class LocalExecutor:
    """本地子进程执行器（默认实现）"""

    def execute(
        self,
        cmd: list[str],
        *,
        cwd: str = ".",
        timeout: int | None = None,
    ) -> CommandResult:
        try:
            r = subprocess.run(
                cmd, capture_output=True, text=True,
                cwd=cwd, check=False, timeout=timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            return CommandResult(returncode=-1, stdout="", stderr=str(e))
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )


def run_checked(
    executor: CommandExecutor,
    cmd: list[str],
    *,
    cwd: str = ".",
    label: str = "cmd",
    timeout: int | None = None,
) -> CommandResult:
    """执行命令，失败抛 ExecutionError

    Args:
        executor: 命令执行器
        cmd: 参数列表（不经 shell 解析）
        cwd: 工作目录
        label: 日志与错误信息中的标签
    """
    logger.debug("  %s: %s (cwd=%s)", label, " ".join(cmd), cwd)
    r = executor.execute(cmd, cwd=cwd, timeout=timeout)
    if not r.success:
        raise ExecutionError(f"{label}失败 (rc={r.returncode}): {r.stderr[:500]}")
    return r
