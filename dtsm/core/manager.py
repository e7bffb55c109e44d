"""dtsm 会话

Manager 是调用方持有的显式会话对象: 一个索引目录 + 一个绑定的清单文件。
通过 create_manager() 构造，构造时完成索引加载；不存在进程级单例，
测试中可以同时存在多个互不影响的会话。

用法:
    from dtsm.core.manager import create_manager
    from dtsm.core.dep.models import InstallOptions

    manager = create_manager("dtsm.json")
    manager.search("angular")
    result = manager.install(InstallOptions(save=True), ["jquery/jquery.d.ts"])
    for term, outcome in result.dependencies.items():
        print(term, outcome.success, outcome.error)

    # 按清单回放
    manager.install_from_file()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from dtsm.core.dep.catalog import IndexCatalog
from dtsm.core.dep.fetcher import FetchOrchestrator
from dtsm.core.dep.graph import DependencyGraphBuilder
from dtsm.core.dep.manifest import ManifestStore
from dtsm.core.dep.models import InstallOptions, UninstallOptions
from dtsm.core.dep.reconciler import ManifestReconciler
from dtsm.core.dep.references import ReferenceParser
from dtsm.core.dep.sources import GitIndexSource
from dtsm.core.exceptions import ManifestCorruptError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dtsm.core.config import Config
    from dtsm.core.dep.models import InstallResult
    from dtsm.core.dep.sources import IndexSource
    from dtsm.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class Manager:
    """声明文件依赖管理会话"""

    def __init__(
        self,
        config: Config,
        source: IndexSource,
        config_path: str | Path | None = None,
    ) -> None:
        self.config = config
        self.source = source
        self.config_path = Path(config_path or config.manifest)
        self.catalog = IndexCatalog(source)
        self.fetcher = FetchOrchestrator(source)
        self.parser = ReferenceParser()
        self.graph = DependencyGraphBuilder(
            self.fetcher, self.parser, max_workers=config.max_workers,
        )
        self.reconciler = ManifestReconciler(
            self.catalog, self.graph, self.fetcher,
            ManifestStore(self.config_path), config,
        )

    def load_index(self) -> None:
        """加载索引目录；索引从未同步时静默跳过，由具体操作报告 IndexUnavailable"""
        if self.source.is_synced():
            self.catalog.load()
        else:
            logger.warning("本地索引不存在，需要先执行 fetch: %s", self.source.url)

    # ---- 操作 ----

    def init(self, path: str | Path | None = None, *, overwrite: bool = False) -> Path:
        return self.reconciler.init(path, overwrite=overwrite)

    def search(self, term: str) -> list[str]:
        return self.reconciler.search(term)

    def install(self, options: InstallOptions, terms: Iterable[str]) -> InstallResult:
        return self.reconciler.install(options, list(terms))

    def install_from_file(self, options: InstallOptions | None = None) -> InstallResult:
        return self.reconciler.install_from_file(options)

    def update(self, options: InstallOptions | None = None) -> InstallResult:
        return self.reconciler.update(options)

    def uninstall(self, options: UninstallOptions, term: str) -> list[str]:
        return self.reconciler.uninstall(options, term)

    def outdated(self) -> list[str]:
        return self.reconciler.outdated()

    def fetch(self) -> str:
        """同步索引仓库并重建本会话的索引目录，返回新的 HEAD"""
        sha = self.source.sync()
        self.catalog.load()
        return sha


def _repo_from_manifest(config_path: Path, config: Config) -> tuple[str, str]:
    """清单里记录了 repos 时优先使用，否则取 settings"""
    store = ManifestStore(config_path)
    if store.exists():
        try:
            repos = store.load().repos
        except ManifestCorruptError:
            # 清单损坏由后续操作报告，这里退回默认索引
            repos = []
        if repos:
            return repos[0].url, repos[0].ref
    return config.repo_url, config.repo_ref


def create_manager(
    config_path: str | Path | None = None,
    *,
    config: Config | None = None,
    source: IndexSource | None = None,
    executor: CommandExecutor | None = None,
) -> Manager:
    """创建会话并加载索引

    参数:
        config_path: 绑定的清单文件，缺省为 config.manifest
        config: 配置，缺省为进程默认配置
        source: 索引来源，缺省按清单 / 配置构造 GitIndexSource
        executor: GitIndexSource 使用的命令执行器
    """
    if config is None:
        from dtsm.core.config import get_config
        config = get_config()
    path = Path(config_path or config.manifest)

    if source is None:
        url, ref = _repo_from_manifest(path, config)
        source = GitIndexSource(
            url, ref, config.index_path(url), executor=executor, timeout=config.git_timeout,
        )

    manager = Manager(config, source, config_path=path)
    if not source.is_synced() and config.auto_sync:
        logger.info("首次使用，同步索引: %s", source.url)
        source.sync()
    manager.load_index()
    return manager
