"""JSON 文件统一读写

清单文件 (dtsm.json) 的序列化格式集中在这里：
UTF-8、2 空格缩进、键排序、末尾换行，保证读出再写回字节稳定。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from dtsm.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)


def dump_json(data: Any) -> str:
    """序列化为规范化的 JSON 文本"""
    return json.dumps(data, indent=2, ensure_ascii=False, sort_keys=True) + "\n"


def load_json(path: str | Path) -> Any:
    """读取 JSON 文件

    异常:
        FileNotFoundError: 文件不存在
        json.JSONDecodeError: 内容不是合法 JSON
    """
    p = Path(path)
    with open(p, encoding="utf-8") as f:
        return json.load(f)


def save_json(path: str | Path, data: Any) -> None:
    """原子写入 JSON 文件"""
    p = Path(path)
    try:
        atomic_write(p, dump_json(data))
    except OSError as e:
        logger.error("写入文件失败: %s, 错误: %s", p, e)
        raise
