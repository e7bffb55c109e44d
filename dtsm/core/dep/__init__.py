"""声明文件解析与同步引擎

模块划分:
- sources.py: 索引仓库来源（git）
- catalog.py: 索引目录与查询
- resolver.py: 检索词 → 唯一标识
- references.py: 三斜线引用指令解析
- fetcher.py: 拉取与落盘
- graph.py: 依赖闭包构建
- manifest.py / bundle.py: 清单与 bundle 文件
- reconciler.py: 清单协调（install / uninstall / outdated）
"""

from dtsm.core.dep.catalog import IndexCatalog
from dtsm.core.dep.fetcher import FetchOrchestrator
from dtsm.core.dep.graph import DependencyGraphBuilder
from dtsm.core.dep.manifest import Manifest, ManifestEntry, ManifestStore
from dtsm.core.dep.models import (
    DependencyNode,
    InstallOptions,
    InstallOutcome,
    InstallResult,
    Resolution,
    ResolutionStatus,
    UninstallOptions,
)
from dtsm.core.dep.reconciler import ManifestReconciler
from dtsm.core.dep.references import ReferenceParser
from dtsm.core.dep.resolver import PathResolver
from dtsm.core.dep.sources import GitIndexSource, IndexSource

__all__ = [
    "DependencyGraphBuilder",
    "DependencyNode",
    "FetchOrchestrator",
    "GitIndexSource",
    "IndexCatalog",
    "IndexSource",
    "InstallOptions",
    "InstallOutcome",
    "InstallResult",
    "Manifest",
    "ManifestEntry",
    "ManifestReconciler",
    "ManifestStore",
    "PathResolver",
    "ReferenceParser",
    "Resolution",
    "ResolutionStatus",
    "UninstallOptions",
]
