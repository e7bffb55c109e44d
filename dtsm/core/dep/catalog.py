"""索引目录

职责:
- 从本地索引 checkout 加载全部声明文件标识（会话内不可变）
- 回答精确 / 子串查询
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dtsm.core.exceptions import IndexUnavailableError

if TYPE_CHECKING:
    from dtsm.core.dep.sources import IndexSource

logger = logging.getLogger(__name__)


def normalize_term(term: str) -> str:
    """检索词规范化: 去空白、反斜杠转斜杠、去掉开头的 ./ 和 /"""
    t = term.strip().replace("\\", "/")
    while t.startswith("./"):
        t = t[2:]
    return t.lstrip("/")


def query_identifiers(identifiers: tuple[str, ...] | list[str], term: str) -> list[str]:
    """在给定标识序列上执行目录查询规则

    精确命中短路返回单元素列表；否则返回不区分大小写包含 term 的全部标识，
    保持原有顺序。空检索词不匹配任何文件。
    """
    t = normalize_term(term)
    if not t:
        return []
    if t in identifiers:
        return [t]
    needle = t.lower()
    return [i for i in identifiers if needle in i.lower()]


class IndexCatalog:
    """声明文件目录 - 一个会话内加载一次"""

    def __init__(self, source: IndexSource) -> None:
        self.source = source
        self._identifiers: tuple[str, ...] | None = None
        self._members: frozenset[str] = frozenset()
        self._head = ""

    def load(self) -> IndexCatalog:
        """读取当前索引 checkout，重复调用即重建（仅 fetch 之后使用）"""
        if not self.source.is_synced():
            raise IndexUnavailableError(
                f"本地索引不存在，请先执行 fetch: {self.source.url}"
            )
        self._head = self.source.head()
        self._identifiers = tuple(sorted(set(self.source.list_files())))
        self._members = frozenset(self._identifiers)
        logger.info("已加载索引 %d 个文件 (HEAD=%s)", len(self._identifiers), self._head[:12])
        return self

    @property
    def loaded(self) -> bool:
        return self._identifiers is not None

    @property
    def identifiers(self) -> tuple[str, ...]:
        self._require()
        assert self._identifiers is not None
        return self._identifiers

    @property
    def head(self) -> str:
        """加载时的索引 commit，作为新安装条目的 ref 标记"""
        self._require()
        return self._head

    def __contains__(self, identifier: object) -> bool:
        self._require()
        return identifier in self._members

    def __len__(self) -> int:
        return len(self.identifiers)

    def query(self, term: str) -> list[str]:
        """精确命中优先，否则不区分大小写的子串匹配"""
        self._require()
        t = normalize_term(term)
        if t in self._members:
            return [t]
        return query_identifiers(self.identifiers, t)

    def fingerprint(self, identifier: str, ref: str = "") -> str | None:
        """文件在 ref（默认当前 HEAD）下的内容指纹，不存在返回 None"""
        self._require()
        return self.source.blob_id(identifier, ref or self._head)

    def _require(self) -> None:
        if self._identifiers is None:
            raise IndexUnavailableError(
                f"索引尚未加载，请先执行 fetch: {self.source.url}"
            )
