"""bundle.d.ts 生成

清单中每个条目一行引用指令，路径相对于 bundle 文件所在目录，
项目只需引用 bundle 即可拿到全部已安装声明。
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from dtsm.utils.yaml_io import atomic_write

if TYPE_CHECKING:
    from dtsm.core.dep.manifest import Manifest

logger = logging.getLogger(__name__)


def render_bundle(manifest: Manifest) -> str:
    bundle_dir = Path(manifest.bundle).parent
    lines = []
    for identifier in sorted(manifest.dependencies):
        target = manifest.root / identifier
        rel = os.path.relpath(target, bundle_dir)
        lines.append(f'/// <reference path="{Path(rel).as_posix()}" />')
    return "\n".join(lines) + ("\n" if lines else "")


def write_bundle(manifest: Manifest) -> Path | None:
    """清单配置了 bundle 时重写 bundle 文件，返回写入路径"""
    if not manifest.bundle:
        return None
    dest = Path(manifest.bundle)
    atomic_write(dest, render_bundle(manifest))
    logger.info("bundle 已更新: %s (%d 条引用)", dest, len(manifest.dependencies))
    return dest
