"""集中配置管理

替代各模块散落的默认常量，提供统一的配置入口。
支持从 YAML settings 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from dtsm.core.exceptions import ConfigError
from dtsm.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = ".dtsm.yml"


@dataclass
class Config:
    """dtsm 配置"""

    # 索引仓库
    repo_url: str = "https://github.com/DefinitelyTyped/DefinitelyTyped.git"
    repo_ref: str = "master"
    index_dir: str = "~/.dtsm/repos"
    auto_sync: bool = True  # 会话创建时索引不存在则自动 clone

    # 清单与安装目录
    manifest: str = "dtsm.json"
    install_path: str = "typings"
    bundle: str = "typings/bundle.d.ts"

    # 执行
    max_workers: int = 8
    git_timeout: int = 600

    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = DEFAULT_SETTINGS_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"settings 文件读取失败: {path} - {e}") from e
        if not data:
            return cls()
        known = {f for f in cls.__dataclass_fields__}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"settings 文件内容无效: {path} - {e}") from e
        if not isinstance(cfg.max_workers, int) or cfg.max_workers < 1:
            raise ConfigError(f"max_workers 必须为正整数: {cfg.max_workers!r}")
        cfg.extra = extra
        return cfg

    def index_path(self, url: str = "") -> Path:
        """索引仓库的本地 checkout 目录（按仓库地址区分）"""
        slug = (url or self.repo_url).rstrip("/").split("/")[-1].removesuffix(".git") or "index"
        return Path(self.index_dir).expanduser() / slug

    def to_dict(self) -> dict:
        return asdict(self)


# 进程级默认配置，首次 import 时不加载文件；由 CLI 入口显式初始化。
# Manager 会话总是显式接收 Config，这里只提供默认值来源。
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_SETTINGS_FILE) -> Config:
    """从文件初始化默认配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
