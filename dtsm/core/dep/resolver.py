"""检索词解析器

把用户输入的模糊检索词解析为唯一的文件标识:
  - 0 个候选 → NotFound
  - 1 个候选 → Found
  - 多个候选 → Ambiguous（附带候选列表，从不替调用方挑选）

精确标识总是优先于子串匹配，由底层查询保证。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from dtsm.core.dep.catalog import query_identifiers
from dtsm.core.dep.models import Resolution

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dtsm.core.dep.catalog import IndexCatalog

logger = logging.getLogger(__name__)

# 查询策略: 检索词 → 候选标识列表
QueryFn = Callable[[str], "list[str]"]


class PathResolver:
    """检索词 → Resolution"""

    def __init__(self, query: QueryFn) -> None:
        self._query = query

    @classmethod
    def for_catalog(cls, catalog: IndexCatalog) -> PathResolver:
        """针对索引目录解析（install / search）"""
        return cls(catalog.query)

    @classmethod
    def for_identifiers(cls, identifiers: Iterable[str]) -> PathResolver:
        """针对任意标识集合解析（uninstall 在已安装条目中匹配）"""
        ids = sorted(identifiers)
        return cls(lambda term: query_identifiers(ids, term))

    def candidates(self, term: str) -> list[str]:
        """全部候选，不做唯一性约束"""
        return self._query(term)

    def resolve(self, term: str) -> Resolution:
        found = self._query(term)
        if not found:
            return Resolution.not_found(term)
        if len(found) == 1:
            return Resolution.found(term, found[0])
        logger.debug("'%s' 匹配到 %d 个候选", term, len(found))
        return Resolution.ambiguous(term, found)

    def resolve_all(self, terms: Iterable[str]) -> dict[str, Resolution]:
        """逐个解析，保持输入顺序，重复检索词只保留一次"""
        return {term: self.resolve(term) for term in terms}
