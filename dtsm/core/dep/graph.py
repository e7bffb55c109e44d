"""依赖闭包构建器

从一组根标识出发，按广度优先逐层 "拉取 → 解析 → 入队"，
直到待处理队列为空。边只有在内容拉取之后才可知，所以解析与拉取交替进行。

- visited 集合保证每个可达标识只处理一次，环自然终止
- 拉取失败的节点记录错误、不再展开，整体构建继续
- 同一层的兄弟节点通过线程池并发拉取，结果按提交顺序汇总
- 子节点沿用引用方的 ref，保证配方回放时内容与记录一致
"""

from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from dtsm.core.dep.models import DependencyNode
from dtsm.core.exceptions import FetchError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from dtsm.core.dep.fetcher import FetchOrchestrator
    from dtsm.core.dep.references import ReferenceParser

logger = logging.getLogger(__name__)


class DependencyGraphBuilder:
    """惰性发现的有向图上的广度优先遍历"""

    def __init__(
        self,
        fetcher: FetchOrchestrator,
        parser: ReferenceParser,
        max_workers: int = 1,
    ) -> None:
        self.fetcher = fetcher
        self.parser = parser
        self.max_workers = max(1, max_workers)

    def build_closure(self, roots: Mapping[str, str]) -> dict[str, DependencyNode]:
        """构建闭包

        参数:
            roots: {根标识: ref}，按插入顺序处理

        返回:
            {标识: DependencyNode}，包含全部可达节点（含拉取失败的节点）
        """
        nodes: dict[str, DependencyNode] = {}
        visited: set[str] = set(roots)
        frontier: list[tuple[str, str]] = list(roots.items())
        depth = 0

        while frontier:
            logger.debug("闭包第 %d 层: %d 个文件", depth, len(frontier))
            next_frontier: list[tuple[str, str]] = []
            for node in self._fetch_level(frontier):
                nodes[node.identifier] = node
                if not node.fetched:
                    continue
                for dep in node.dependencies:
                    if dep not in visited:
                        visited.add(dep)
                        next_frontier.append((dep, node.ref))
            frontier = next_frontier
            depth += 1

        failed = sum(1 for n in nodes.values() if not n.fetched)
        logger.info("闭包构建完成: %d 个文件, %d 个失败", len(nodes), failed)
        return nodes

    def _fetch_level(self, frontier: list[tuple[str, str]]) -> list[DependencyNode]:
        if self.max_workers == 1 or len(frontier) == 1:
            return [self._visit(ident, ref) for ident, ref in frontier]

        workers = min(self.max_workers, len(frontier))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._visit, ident, ref) for ident, ref in frontier]
            return [f.result() for f in futures]

    def _visit(self, identifier: str, ref: str) -> DependencyNode:
        node = DependencyNode(identifier=identifier, ref=ref)
        try:
            node.content = self.fetcher.fetch(identifier, ref)
        except FetchError as e:
            logger.warning("拉取失败（跳过该分支）: %s@%s - %s", identifier, ref[:12], e.cause,
                           extra={"identifier": identifier, "ref": ref})
            node.error = e.cause
            return node

        scan = self.parser.scan(node.content, identifier)
        for line in scan.skipped:
            logger.debug("  忽略无法解析的引用 (%s): %s", identifier, line)
        node.dependencies = sorted(scan.dependencies)
        return node


def reachable(
    nodes: Mapping[str, DependencyNode], root: str,
) -> tuple[list[str], dict[str, str]]:
    """从 root 出发在已构建的闭包中遍历

    返回:
        (拉取成功的可达标识列表, {拉取失败的可达标识: 错误})
    """
    ok: list[str] = []
    failed: dict[str, str] = {}
    seen = {root}
    queue = deque([root])
    while queue:
        ident = queue.popleft()
        node = nodes.get(ident)
        if node is None:
            continue
        if not node.fetched:
            failed[ident] = node.error or "未拉取"
            continue
        ok.append(ident)
        for dep in node.dependencies:
            if dep not in seen:
                seen.add(dep)
                queue.append(dep)
    return ok, failed
