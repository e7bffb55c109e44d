"""网络工具 — 索引仓库地址与 ref 的安全校验"""

from __future__ import annotations

import re
from urllib.parse import urlparse

from dtsm.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https", "ssh", "git", "file"))

# scp 风格地址: git@github.com:owner/repo.git
_SCP_LIKE_RE = re.compile(r"^[\w.\-]+@[\w.\-]+:[\w./\-]+$")

_SAFE_REF_RE = re.compile(r"^[a-zA-Z0-9_./@\-]+$")


def validate_repo_url(url: str, *, context: str = "") -> None:
    """校验索引仓库地址，只允许 git 可识别且不会被当作命令参数的形式

    允许: http(s)/ssh/git/file 协议、scp 风格地址、本地路径

    Raises:
        ValidationError: 地址为空、以 "-" 开头或协议不在白名单内
    """
    label = f" ({context})" if context else ""
    if not url or url.startswith("-"):
        raise ValidationError(f"非法的仓库地址{label}: {url!r}")
    if _SCP_LIKE_RE.match(url):
        return
    parsed = urlparse(url)
    # 无协议 → 本地路径; 单字母协议 → Windows 盘符
    if not parsed.scheme or len(parsed.scheme) == 1:
        return
    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise ValidationError(
            f"不允许的仓库协议 '{parsed.scheme}'{label}，"
            f"仅支持 {'/'.join(sorted(_ALLOWED_SCHEMES))}: {url}"
        )


def validate_ref(ref: str) -> None:
    """校验分支 / tag / commit 名称

    Raises:
        ValidationError: ref 为空、以 "-" 开头或包含非法字符
    """
    if not ref or ref.startswith("-") or not _SAFE_REF_RE.match(ref):
        raise ValidationError(f"ref 包含非法字符: {ref}")
