"""共享 fixture: 内存索引来源 + 会话工厂

内存索引模拟一个 DefinitelyTyped 风格的仓库:

  jquery/jquery.d.ts                      无依赖
  angularjs/angular.d.ts                  → jquery
  angularjs/angular-route.d.ts            → angular
  angular-ui-router/angular-ui-router.d.ts → angular
  gae.channel/gae.channel.d.ts            无依赖
  atom/atom.d.ts                          → q, node, space-pen (→ jquery)
  cycle/a.d.ts ↔ cycle/b.d.ts             互相引用
  broken/broken.d.ts                      → missing/missing.d.ts（索引中不存在）

测试通过 create_manager(source=...) 注入，不触碰 git 和网络。
"""

from __future__ import annotations

import hashlib
import threading
from pathlib import Path
from typing import Callable

import pytest

from dtsm.core.config import Config
from dtsm.core.manager import Manager, create_manager
from dtsm.utils.net import validate_ref


def _ref(*paths: str) -> str:
    return "".join(f'/// <reference path="{p}" />\n' for p in paths)


BASE_FILES: dict[str, str] = {
    "README.md": "# index\n",
    "jquery/jquery.d.ts": "interface JQuery {}\ndeclare var $: JQuery;\n",
    "angularjs/angular.d.ts": _ref("../jquery/jquery.d.ts") + "declare module ng {}\n",
    "angularjs/angular-route.d.ts": _ref("angular.d.ts") + "declare module ng.route {}\n",
    "angular-ui-router/angular-ui-router.d.ts": (
        _ref("../angularjs/angular.d.ts") + "declare module ng.ui {}\n"
    ),
    "gae.channel/gae.channel.d.ts": "declare module goog.appengine {}\n",
    "atom/atom.d.ts": (
        _ref("../q/Q.d.ts", "../node/node.d.ts", "../space-pen/space-pen.d.ts")
        + "declare module AtomCore {}\n"
    ),
    "q/Q.d.ts": "declare module Q {}\n",
    "node/node.d.ts": "declare var process: any;\n",
    "space-pen/space-pen.d.ts": _ref("../jquery/jquery.d.ts") + "declare module SpacePen {}\n",
    "cycle/a.d.ts": _ref("b.d.ts") + "declare var a: number;\n",
    "cycle/b.d.ts": _ref("a.d.ts", "b.d.ts") + "declare var b: number;\n",
    "broken/broken.d.ts": _ref("../missing/missing.d.ts") + "declare var broken: any;\n",
}

BASE_SHA = "a" * 40


class FakeIndexSource:
    """内存版 IndexSource: 按 commit 保存文件快照"""

    def __init__(
        self,
        files: dict[str, str] | None = None,
        *,
        url: str = "https://example.com/DefinitelyTyped.git",
        ref: str = "master",
        synced: bool = True,
    ) -> None:
        self._url = url
        self._ref = ref
        self.synced = synced
        self.commits: dict[str, dict[str, str]] = {}
        self._head = ""
        self.sync_count = 0
        self.reads: list[tuple[str, str]] = []
        self.failing: set[str] = set()
        self._lock = threading.Lock()
        self.add_commit(BASE_SHA, dict(BASE_FILES if files is None else files))

    @property
    def url(self) -> str:
        return self._url

    @property
    def ref(self) -> str:
        return self._ref

    def add_commit(self, sha: str, files: dict[str, str]) -> None:
        """追加一个 commit 并移动 HEAD（需要 sync 后目录才会看到）"""
        self.commits[sha] = files
        self._head = sha

    def is_synced(self) -> bool:
        return self.synced

    def sync(self) -> str:
        self.synced = True
        self.sync_count += 1
        return self._head

    def head(self) -> str:
        return self._head

    def list_files(self) -> list[str]:
        return [p for p in self.commits[self._head] if p.endswith(".d.ts")]

    def read_file(self, identifier: str, ref: str) -> str:
        validate_ref(ref)
        with self._lock:
            self.reads.append((identifier, ref))
        if identifier in self.failing:
            raise OSError(f"connection reset while reading {identifier}")
        files = self.commits.get(ref)
        if files is None or identifier not in files:
            raise FileNotFoundError(f"{identifier}@{ref}")
        return files[identifier]

    def blob_id(self, identifier: str, ref: str) -> str | None:
        validate_ref(ref)
        files = self.commits.get(ref)
        if files is None or identifier not in files:
            return None
        return hashlib.sha1(files[identifier].encode()).hexdigest()


@pytest.fixture()
def source() -> FakeIndexSource:
    return FakeIndexSource()


@pytest.fixture()
def make_source() -> Callable[..., FakeIndexSource]:
    """自定义文件集合的索引来源工厂"""
    return FakeIndexSource


@pytest.fixture()
def config(tmp_path: Path) -> Config:
    return Config(
        index_dir=str(tmp_path / "index"),
        install_path=str(tmp_path / "typings"),
        bundle=str(tmp_path / "typings" / "bundle.d.ts"),
        max_workers=4,
        auto_sync=False,
    )


@pytest.fixture()
def manifest_path(tmp_path: Path) -> Path:
    return tmp_path / "dtsm.json"


@pytest.fixture()
def make_manager(
    config: Config, source: FakeIndexSource, manifest_path: Path,
) -> Callable[..., Manager]:
    """会话工厂: make_manager() / make_manager(path, source=...)"""

    def _make(
        path: Path | None = None,
        *,
        source: FakeIndexSource = source,
        config: Config = config,
    ) -> Manager:
        return create_manager(path or manifest_path, config=config, source=source)

    return _make


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """目录下全部文件的 {相对路径: 内容}，用于比较前后是否变化"""
    if not root.exists():
        return {}
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*")) if p.is_file()
    }


@pytest.fixture()
def snapshot() -> Callable[[Path], dict[str, bytes]]:
    return snapshot_tree
