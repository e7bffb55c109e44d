"""声明文件拉取器

职责:
- 按 (标识, ref) 从索引来源读取内容，失败统一包装为 FetchError
- 把拉取到的内容落盘到安装目录（install）
- 删除已安装文件并清理空目录（uninstall）

不做内部重试；每次调用相互独立，不同标识可以并发拉取。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from dtsm.core.exceptions import DtsmError, FetchError, ValidationError
from dtsm.utils.yaml_io import atomic_write

if TYPE_CHECKING:
    from dtsm.core.dep.sources import IndexSource

logger = logging.getLogger(__name__)


class FetchOrchestrator:
    """声明文件拉取器 - 只读拉取 + 可选落盘"""

    def __init__(self, source: IndexSource) -> None:
        self.source = source

    def fetch(self, identifier: str, ref: str) -> str:
        """读取 identifier 在 ref 下的内容

        Raises:
            FetchError: 文件不存在、git 失败或内容无法解码
        """
        try:
            return self.source.read_file(identifier, ref)
        except (OSError, UnicodeDecodeError, DtsmError) as e:
            raise FetchError(identifier, str(e)) from e

    @staticmethod
    def target_path(identifier: str, root: Path) -> Path:
        """计算安装路径，拒绝越出安装根目录的标识"""
        dest = (root / identifier).resolve()
        base = root.resolve()
        if dest == base or base not in dest.parents:
            raise ValidationError(f"标识越出安装目录: {identifier}")
        return dest

    def materialize(self, identifier: str, content: str, root: Path) -> Path:
        """把内容写到 root/identifier（原子替换）"""
        dest = self.target_path(identifier, root)
        atomic_write(dest, content)
        logger.debug("  已写入: %s", dest)
        return dest

    def remove(self, identifier: str, root: Path) -> bool:
        """删除已安装文件，并向上清理空目录（不越过 root）"""
        dest = self.target_path(identifier, root)
        if not dest.exists():
            return False
        dest.unlink()
        base = root.resolve()
        parent = dest.parent
        while parent != base and base in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent
        logger.debug("  已删除: %s", dest)
        return True
