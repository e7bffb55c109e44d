"""清单协调器

把解析 + 闭包构建的结果折叠进清单，并保证磁盘文件与清单一致:

  - install:            检索词 → 标识 → 闭包 → 落盘 → (save) 合并清单
  - install_from_file:  以清单记录的条目和 ref 为根回放
  - update:             以清单条目为根、按当前索引 HEAD 重新安装
  - uninstall:          在已安装条目中匹配 → 删除文件 → (save) 删除条目
  - outdated:           记录的 ref 与当前索引内容不一致的条目

dry_run 时只解析和汇报，不写任何文件。清单在每次操作开始时读取一次，
只在末尾原子写入一次，中途中断不会留下半写清单。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from dtsm.core.dep.bundle import write_bundle
from dtsm.core.dep.graph import reachable
from dtsm.core.dep.manifest import Manifest, ManifestEntry, ManifestStore, RepoRef
from dtsm.core.dep.models import (
    DependencyNode,
    InstallOptions,
    InstallOutcome,
    InstallResult,
    ResolutionStatus,
    UninstallOptions,
)
from dtsm.core.dep.resolver import PathResolver
from dtsm.core.exceptions import ManifestNotFoundError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from dtsm.core.config import Config
    from dtsm.core.dep.catalog import IndexCatalog
    from dtsm.core.dep.fetcher import FetchOrchestrator
    from dtsm.core.dep.graph import DependencyGraphBuilder

logger = logging.getLogger(__name__)


class ManifestReconciler:
    """清单合并 / 回放 / 卸载"""

    def __init__(
        self,
        catalog: IndexCatalog,
        graph: DependencyGraphBuilder,
        fetcher: FetchOrchestrator,
        store: ManifestStore,
        config: Config,
    ) -> None:
        self.catalog = catalog
        self.resolver = PathResolver.for_catalog(catalog)
        self.graph = graph
        self.fetcher = fetcher
        self.store = store
        self.config = config

    # ------------------------------------------------------------------
    # 清单读取
    # ------------------------------------------------------------------

    def empty_manifest(self) -> Manifest:
        source = self.fetcher.source
        return Manifest(
            path=self.config.install_path,
            bundle=self.config.bundle,
            repos=[RepoRef(url=source.url, ref=source.ref)],
        )

    def load_manifest(self, store: ManifestStore | None = None) -> Manifest:
        """读取清单，不存在时返回内存中的空清单（不落盘）"""
        store = store or self.store
        if not store.exists():
            return self.empty_manifest()
        return store.load()

    def init(self, path: str | Path | None = None, *, overwrite: bool = False) -> Path:
        """在 path 新建空清单文件"""
        store = ManifestStore(path) if path else self.store
        store.create(self.empty_manifest(), overwrite=overwrite)
        logger.info("已创建清单: %s", store.path)
        return store.path

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def search(self, term: str) -> list[str]:
        """全部候选，不要求唯一"""
        return self.resolver.candidates(term)

    def outdated(self) -> list[str]:
        """记录的 ref 下内容与当前索引不一致（或已从索引消失）的条目"""
        manifest = self.load_manifest()
        result: list[str] = []
        for identifier, entry in sorted(manifest.dependencies.items()):
            if identifier not in self.catalog:
                logger.info("  索引中已不存在: %s", identifier)
                result.append(identifier)
                continue
            current = self.catalog.fingerprint(identifier)
            try:
                recorded = self.catalog.fingerprint(identifier, entry.ref) if entry.ref else None
            except ValidationError as e:
                logger.warning("  记录的 ref 无效，视为过期: %s (%s)", identifier, e,
                               extra={"identifier": identifier, "ref": entry.ref})
                result.append(identifier)
                continue
            if recorded != current:
                result.append(identifier)
        logger.info("过期检查: %d/%d 个条目需要更新", len(result), len(manifest.dependencies))
        return result

    # ------------------------------------------------------------------
    # 安装
    # ------------------------------------------------------------------

    def install(self, options: InstallOptions, terms: Iterable[str]) -> InstallResult:
        """按检索词安装，每个检索词一条结果，互不影响"""
        resolutions = self.resolver.resolve_all(terms)
        manifest = self.load_manifest()

        head = self.catalog.head
        roots: dict[str, str] = {}
        for res in resolutions.values():
            if res.ok:
                roots.setdefault(res.identifier, head)

        nodes = self.graph.build_closure(roots) if roots else {}

        result = InstallResult(dry_run=options.dry_run)
        for term, res in resolutions.items():
            if not res.ok:
                logger.warning("%s", res.describe(), extra={"term": term})
                result.dependencies[term] = InstallOutcome(
                    key=term,
                    error=res.describe(),
                    candidates=(
                        list(res.candidates)
                        if res.status is ResolutionStatus.AMBIGUOUS else []
                    ),
                )
                continue
            result.dependencies[term] = self._root_outcome(term, res.identifier, nodes)

        result.saved = self._apply(options, manifest, nodes)
        return result

    def install_from_file(self, options: InstallOptions | None = None) -> InstallResult:
        """配方回放: 按清单记录的 ref 重新拉取全部条目及其传递依赖"""
        manifest = self._require_manifest()
        # 索引未同步时直接失败，不降级为逐个节点的拉取错误
        head = self.catalog.head
        roots = {
            identifier: entry.ref or head
            for identifier, entry in manifest.dependencies.items()
        }
        return self._replay(options or InstallOptions(), manifest, roots)

    def update(self, options: InstallOptions | None = None) -> InstallResult:
        """把全部条目更新到当前索引 HEAD"""
        manifest = self._require_manifest()
        head = self.catalog.head
        roots = {identifier: head for identifier in manifest.dependencies}
        return self._replay(options or InstallOptions(), manifest, roots)

    def _replay(
        self, options: InstallOptions, manifest: Manifest, roots: Mapping[str, str],
    ) -> InstallResult:
        nodes = self.graph.build_closure(roots) if roots else {}
        result = InstallResult(dry_run=options.dry_run)
        for identifier, node in nodes.items():
            if identifier in roots:
                outcome = self._root_outcome(identifier, identifier, nodes)
            else:
                outcome = InstallOutcome(
                    key=identifier,
                    identifier=identifier,
                    error=self._fetch_error(node),
                    installed=[identifier] if node.fetched else [],
                )
            result.dependencies[identifier] = outcome
        result.saved = self._apply(options, manifest, nodes)
        return result

    def _require_manifest(self) -> Manifest:
        if not self.store.exists():
            raise ManifestNotFoundError(f"清单文件不存在: {self.store.path}")
        return self.store.load()

    @staticmethod
    def _fetch_error(node: DependencyNode) -> str:
        return f"拉取失败: {node.error}" if node.error else ""

    @staticmethod
    def _root_outcome(
        key: str, identifier: str, nodes: Mapping[str, DependencyNode],
    ) -> InstallOutcome:
        installed, failed = reachable(nodes, identifier)
        error = f"拉取失败: {failed[identifier]}" if identifier in failed else ""
        return InstallOutcome(
            key=key,
            identifier=identifier,
            error=error,
            installed=installed,
            failed_dependencies={k: v for k, v in failed.items() if k != identifier},
        )

    def _apply(
        self, options: InstallOptions, manifest: Manifest, nodes: Mapping[str, DependencyNode],
    ) -> bool:
        """落盘成功拉取的节点；save 时合并进清单，返回是否写了清单"""
        fetched = [n for n in nodes.values() if n.fetched]
        if options.dry_run:
            logger.info("dry-run: 将安装 %d 个文件到 %s（未写入）", len(fetched), manifest.root)
            return False

        for node in fetched:
            assert node.content is not None
            self.fetcher.materialize(node.identifier, node.content, manifest.root)
        logger.info("已安装 %d 个文件到 %s", len(fetched), manifest.root)

        if not options.save or not fetched:
            return False

        merged = manifest.copy()
        for node in fetched:
            previous = merged.dependencies.get(node.identifier)
            merged.dependencies[node.identifier] = ManifestEntry(
                ref=node.ref,
                dependencies=list(node.dependencies),
                extra=previous.extra if previous else {},
            )
        if not merged.repos:
            merged.repos = [RepoRef(url=self.fetcher.source.url, ref=self.fetcher.source.ref)]
        self.store.save(merged)
        write_bundle(merged)
        return True

    # ------------------------------------------------------------------
    # 卸载
    # ------------------------------------------------------------------

    def uninstall(self, options: UninstallOptions, term: str) -> list[str]:
        """在已安装条目中匹配 term 并删除

        不做依赖安全检查: 仍被其他条目引用的文件照样删除，只记录警告。
        未找到或匹配不唯一时返回空列表。
        """
        store = ManifestStore(options.path) if options.path else self.store
        if not store.exists():
            logger.warning("清单文件不存在，没有可卸载的文件: %s", store.path)
            return []
        manifest = store.load()

        res = PathResolver.for_identifiers(manifest.dependencies).resolve(term)
        if not res.ok:
            logger.warning("%s", res.describe(), extra={"term": term})
            return []

        identifier = res.identifier
        dependents = manifest.dependents_of(identifier)
        if dependents:
            logger.warning(
                "%s 仍被以下条目引用，照常删除: %s", identifier, ", ".join(dependents),
            )

        if not self.fetcher.remove(identifier, manifest.root):
            logger.warning("文件不存在，仅处理清单条目: %s", manifest.root / identifier)

        if options.save:
            del manifest.dependencies[identifier]
            store.save(manifest)
            write_bundle(manifest)
        logger.info("已卸载: %s", identifier)
        return [identifier]
