"""依赖闭包构建测试"""

from __future__ import annotations

from collections import Counter

import pytest

from dtsm.core.dep.fetcher import FetchOrchestrator
from dtsm.core.dep.graph import DependencyGraphBuilder, reachable
from dtsm.core.dep.references import ReferenceParser

BASE = "a" * 40  # 内存索引的初始 commit


def _builder(src, workers: int = 1) -> DependencyGraphBuilder:
    return DependencyGraphBuilder(FetchOrchestrator(src), ReferenceParser(), max_workers=workers)


class TestBuildClosure:
    @pytest.mark.parametrize("workers", [1, 4])
    def test_transitive_closure(self, source, workers: int) -> None:
        nodes = _builder(source, workers).build_closure({"atom/atom.d.ts": BASE})
        assert set(nodes) == {
            "atom/atom.d.ts", "q/Q.d.ts", "node/node.d.ts",
            "space-pen/space-pen.d.ts", "jquery/jquery.d.ts",
        }
        assert all(n.fetched for n in nodes.values())
        assert nodes["atom/atom.d.ts"].dependencies == [
            "node/node.d.ts", "q/Q.d.ts", "space-pen/space-pen.d.ts",
        ]

    @pytest.mark.parametrize("workers", [1, 4])
    def test_each_identifier_fetched_once(self, source, workers: int) -> None:
        """angular 与 space-pen 都引用 jquery，只拉取一次"""
        _builder(source, workers).build_closure({
            "angularjs/angular-route.d.ts": BASE,
            "atom/atom.d.ts": BASE,
        })
        counts = Counter(ident for ident, _ in source.reads)
        assert counts["jquery/jquery.d.ts"] == 1
        assert max(counts.values()) == 1

    def test_cycle_terminates(self, source) -> None:
        nodes = _builder(source).build_closure({"cycle/a.d.ts": BASE})
        assert set(nodes) == {"cycle/a.d.ts", "cycle/b.d.ts"}
        assert len(source.reads) == 2

    def test_missing_dependency_recorded_not_raised(self, source) -> None:
        nodes = _builder(source).build_closure({"broken/broken.d.ts": BASE})
        assert nodes["broken/broken.d.ts"].fetched
        missing = nodes["missing/missing.d.ts"]
        assert not missing.fetched
        assert "missing/missing.d.ts" in missing.error

    def test_failed_node_not_expanded(self, source) -> None:
        """拉取失败的节点不展开，只通过它可达的文件被排除"""
        source.failing.add("space-pen/space-pen.d.ts")
        nodes = _builder(source).build_closure({"atom/atom.d.ts": BASE})
        assert "connection reset" in nodes["space-pen/space-pen.d.ts"].error
        assert "jquery/jquery.d.ts" not in nodes
        assert nodes["q/Q.d.ts"].fetched

    def test_children_inherit_ref(self, source) -> None:
        source.add_commit("b" * 40, dict(source.commits[BASE]))
        nodes = _builder(source).build_closure({"angularjs/angular.d.ts": BASE})
        assert nodes["jquery/jquery.d.ts"].ref == BASE
        assert ("jquery/jquery.d.ts", BASE) in source.reads

    def test_empty_roots(self, source) -> None:
        assert _builder(source).build_closure({}) == {}
        assert source.reads == []

    def test_result_order_deterministic(self, source) -> None:
        roots = {"atom/atom.d.ts": BASE, "angularjs/angular.d.ts": BASE}
        seq = list(_builder(source, 1).build_closure(roots))
        par = list(_builder(source, 8).build_closure(roots))
        assert seq == par


class TestReachable:
    def test_reachable_splits_failures(self, source) -> None:
        source.failing.add("node/node.d.ts")
        nodes = _builder(source).build_closure({"atom/atom.d.ts": BASE})
        ok, failed = reachable(nodes, "atom/atom.d.ts")
        assert "atom/atom.d.ts" in ok
        assert "jquery/jquery.d.ts" in ok
        assert set(failed) == {"node/node.d.ts"}

    def test_unknown_root(self) -> None:
        assert reachable({}, "x/x.d.ts") == ([], {})
