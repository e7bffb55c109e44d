"""依赖解析数据模型

数据类:
- Resolution: 检索词解析结果（Found / NotFound / Ambiguous 三选一）
- DependencyNode: 一次闭包构建中的单个节点
- InstallOptions / UninstallOptions: 操作选项
- InstallOutcome / InstallResult: 面向调用方的逐条结果
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# 索引命名空间内的相对路径，如 "jquery/jquery.d.ts"
Identifier = str


class ResolutionStatus(str, Enum):
    """检索词解析状态"""
    FOUND = "found"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class Resolution:
    """单个检索词的解析结果，匹配不唯一时携带全部候选，从不猜测"""

    term: str
    status: ResolutionStatus
    identifier: Identifier = ""
    candidates: tuple[Identifier, ...] = ()

    @classmethod
    def found(cls, term: str, identifier: Identifier) -> Resolution:
        return cls(term, ResolutionStatus.FOUND, identifier, (identifier,))

    @classmethod
    def not_found(cls, term: str) -> Resolution:
        return cls(term, ResolutionStatus.NOT_FOUND)

    @classmethod
    def ambiguous(cls, term: str, candidates: list[Identifier]) -> Resolution:
        return cls(term, ResolutionStatus.AMBIGUOUS, "", tuple(candidates))

    @property
    def ok(self) -> bool:
        return self.status is ResolutionStatus.FOUND

    def describe(self) -> str:
        """失败时的说明文字"""
        if self.status is ResolutionStatus.NOT_FOUND:
            return f"未找到匹配 '{self.term}' 的文件"
        if self.status is ResolutionStatus.AMBIGUOUS:
            shown = ", ".join(self.candidates[:10])
            more = f" 等 {len(self.candidates)} 个" if len(self.candidates) > 10 else ""
            return f"'{self.term}' 匹配到多个文件: {shown}{more}"
        return ""


@dataclass
class DependencyNode:
    """闭包中的单个声明文件

    content 在拉取成功前为 None；error 非空表示拉取失败，
    失败节点不再向下展开。
    """

    identifier: Identifier
    ref: str = ""
    content: str | None = None
    dependencies: list[Identifier] = field(default_factory=list)
    error: str = ""

    @property
    def fetched(self) -> bool:
        return not self.error and self.content is not None


@dataclass
class InstallOptions:
    """install 选项"""

    save: bool = False
    dry_run: bool = False


@dataclass
class UninstallOptions:
    """uninstall 选项，path 为空时使用会话绑定的清单"""

    path: str = ""
    save: bool = False


@dataclass
class InstallOutcome:
    """单个检索词（或配方回放时的单个标识）的安装结果"""

    key: str
    identifier: Identifier = ""
    error: str = ""
    candidates: list[Identifier] = field(default_factory=list)
    installed: list[Identifier] = field(default_factory=list)
    failed_dependencies: dict[Identifier, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.error


@dataclass
class InstallResult:
    """一次 install / install_from_file 的汇总结果"""

    dependencies: dict[str, InstallOutcome] = field(default_factory=dict)
    dry_run: bool = False
    saved: bool = False

    @property
    def success(self) -> bool:
        return all(o.success for o in self.dependencies.values())

    @property
    def failed(self) -> dict[str, InstallOutcome]:
        return {k: o for k, o in self.dependencies.items() if not o.success}

    def installed_identifiers(self) -> list[Identifier]:
        """本次涉及的全部文件（去重、排序）"""
        seen: set[Identifier] = set()
        for o in self.dependencies.values():
            seen.update(o.installed)
        return sorted(seen)
