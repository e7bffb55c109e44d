"""清单文件 (dtsm.json) 模型与持久化

格式:
    {
      "repos": [{"url": "...", "ref": "master"}],
      "path": "typings",
      "bundle": "typings/bundle.d.ts",
      "dependencies": {
        "jquery/jquery.d.ts": {"ref": "<commit>", "dependencies": []}
      }
    }

未识别的字段原样保留，读出再写回保持字节稳定（键顺序规范化除外）。
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dtsm.core.exceptions import ManifestCorruptError, ManifestExistsError
from dtsm.utils.json_io import load_json, save_json

logger = logging.getLogger(__name__)


@dataclass
class ManifestEntry:
    """单个已安装文件的记录"""

    ref: str = ""
    dependencies: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {**self.extra, "ref": self.ref, "dependencies": sorted(set(self.dependencies))}


@dataclass
class RepoRef:
    """索引仓库地址 + 分支"""

    url: str
    ref: str = "master"


@dataclass
class Manifest:
    """已安装文件清单"""

    path: str
    bundle: str = ""
    repos: list[RepoRef] = field(default_factory=list)
    dependencies: dict[str, ManifestEntry] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def root(self) -> Path:
        """安装根目录（相对路径相对于当前工作目录）"""
        return Path(self.path)

    def dependents_of(self, identifier: str) -> list[str]:
        """仍引用 identifier 的其他条目"""
        return sorted(
            key for key, entry in self.dependencies.items()
            if key != identifier and identifier in entry.dependencies
        )

    def copy(self) -> Manifest:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        if self.repos:
            data["repos"] = [{"url": r.url, "ref": r.ref} for r in self.repos]
        data["path"] = self.path
        if self.bundle:
            data["bundle"] = self.bundle
        data["dependencies"] = {
            key: entry.to_dict() for key, entry in sorted(self.dependencies.items())
        }
        return data

    @classmethod
    def from_dict(cls, data: Any, *, source: str = "") -> Manifest:
        """从解析后的 JSON 构建，结构不合法时抛 ManifestCorruptError"""
        where = f": {source}" if source else ""
        if not isinstance(data, dict):
            raise ManifestCorruptError(f"清单顶层必须是对象{where}")
        path = data.get("path")
        if not isinstance(path, str) or not path:
            raise ManifestCorruptError(f"清单缺少 path 字段{where}")

        bundle = data.get("bundle", "")
        if not isinstance(bundle, str):
            raise ManifestCorruptError(f"bundle 字段必须是字符串{where}")

        repos: list[RepoRef] = []
        for item in data.get("repos") or []:
            if not isinstance(item, dict) or not isinstance(item.get("url"), str):
                raise ManifestCorruptError(f"repos 条目格式错误{where}: {item!r}")
            repos.append(RepoRef(url=item["url"], ref=str(item.get("ref", "master"))))

        raw_deps = data.get("dependencies") or {}
        if not isinstance(raw_deps, dict):
            raise ManifestCorruptError(f"dependencies 字段必须是对象{where}")
        deps: dict[str, ManifestEntry] = {}
        for key, info in raw_deps.items():
            if info is None:
                info = {}
            if not isinstance(info, dict):
                raise ManifestCorruptError(f"依赖条目格式错误{where}: {key}")
            sub = info.get("dependencies") or []
            if not isinstance(sub, list) or not all(isinstance(s, str) for s in sub):
                raise ManifestCorruptError(f"依赖条目 {key} 的 dependencies 必须是字符串列表{where}")
            deps[key] = ManifestEntry(
                ref=str(info.get("ref") or ""),
                dependencies=list(sub),
                extra={k: v for k, v in info.items() if k not in ("ref", "dependencies")},
            )

        known = ("repos", "path", "bundle", "dependencies")
        return cls(
            path=path,
            bundle=bundle,
            repos=repos,
            dependencies=deps,
            extra={k: v for k, v in data.items() if k not in known},
        )


class ManifestStore:
    """清单文件读写 - 每次操作读一次、最多在末尾原子写一次"""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Manifest:
        """读取清单

        Raises:
            FileNotFoundError: 文件不存在
            ManifestCorruptError: 内容不是合法 JSON 或结构错误
        """
        try:
            data = load_json(self.path)
        except json.JSONDecodeError as e:
            raise ManifestCorruptError(f"清单文件无法解析: {self.path} - {e}") from e
        except UnicodeDecodeError as e:
            raise ManifestCorruptError(f"清单文件编码错误: {self.path} - {e}") from e
        return Manifest.from_dict(data, source=str(self.path))

    def save(self, manifest: Manifest) -> None:
        save_json(self.path, manifest.to_dict())
        logger.info("清单已保存: %s (%d 个条目)", self.path, len(manifest.dependencies))

    def create(self, manifest: Manifest, *, overwrite: bool = False) -> None:
        """新建清单文件，已存在且未要求覆盖时抛 ManifestExistsError"""
        if self.exists() and not overwrite:
            raise ManifestExistsError(f"清单文件已存在: {self.path}")
        self.save(manifest)
