"""引用指令解析器

从声明文件文本中提取三斜线引用指令:

    /// <reference path="../node/node.d.ts" />

相对路径按引用方文件所在目录解析，并规范化为索引内的标识。
无法解析的指令（格式错误、越出索引根目录、非声明文件）被忽略，
由调用方决定是否记录日志，本模块不抛异常也不写日志。
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field

_DIRECTIVE_RE = re.compile(r"^\s*///\s*<reference\b")
_PATH_RE = re.compile(
    r"""^\s*///\s*<reference\s+path\s*=\s*(["'])(?P<path>[^"']+)\1\s*/?>""",
)
# 非 path 形式的合法指令（types / lib / no-default-lib），不产生文件依赖
_OTHER_RE = re.compile(
    r"""^\s*///\s*<reference\s+(types|lib|no-default-lib)\s*=\s*(["']).*?\2\s*/?>""",
)


@dataclass
class ReferenceScan:
    """一次扫描的结果: 依赖集合 + 被跳过的指令行"""

    dependencies: set[str] = field(default_factory=set)
    skipped: list[str] = field(default_factory=list)


def normalize_reference(identifier: str, ref_path: str) -> str | None:
    """把引用路径解析为索引内标识，越界或非声明文件返回 None"""
    raw = ref_path.strip().replace("\\", "/")
    if not raw or raw.startswith("/") or not raw.endswith(".d.ts"):
        return None
    base = posixpath.dirname(identifier)
    resolved = posixpath.normpath(posixpath.join(base, raw))
    if resolved.startswith("../") or resolved in (".", ".."):
        return None
    return resolved


class ReferenceParser:
    """三斜线引用指令解析器（无状态）"""

    def scan(self, content: str, identifier: str) -> ReferenceScan:
        result = ReferenceScan()
        for line in content.splitlines():
            if not _DIRECTIVE_RE.match(line):
                continue
            m = _PATH_RE.match(line)
            if m is None:
                if not _OTHER_RE.match(line):
                    result.skipped.append(line.strip())
                continue
            dep = normalize_reference(identifier, m.group("path"))
            if dep is None:
                result.skipped.append(line.strip())
            elif dep != identifier:
                result.dependencies.add(dep)
        return result

    def extract_dependencies(self, content: str, identifier: str) -> set[str]:
        """返回 content 中声明的依赖标识集合，没有则为空集"""
        return self.scan(content, identifier).dependencies
