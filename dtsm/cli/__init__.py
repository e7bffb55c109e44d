"""dtsm 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
每条命令对应一个独立的 Manager 会话。
"""

from __future__ import annotations

import dataclasses
import functools
import os
from typing import Any, Callable

import click

from dtsm import __version__
from dtsm.core.config import DEFAULT_SETTINGS_FILE, Config, init_config
from dtsm.core.exceptions import DtsmError
from dtsm.utils.logger import setup_logging


def open_manager(ctx: click.Context, *, auto_sync: bool | None = None) -> Any:
    """按全局选项创建会话"""
    from dtsm.core.manager import create_manager

    cfg: Config = ctx.obj["config"]
    if auto_sync is not None:
        cfg = dataclasses.replace(cfg, auto_sync=auto_sync)
    return create_manager(ctx.obj["manifest"], config=cfg)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """把 DtsmError 转为 click 的友好错误输出（退出码 1）"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except DtsmError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "manifest", default=None, help="清单文件路径（默认 dtsm.json）")
@click.option("--settings", default=DEFAULT_SETTINGS_FILE, show_default=True, help="YAML 配置文件")
@click.pass_context
def main(ctx: click.Context, manifest: str | None, settings: str) -> None:
    """dtsm - TypeScript 声明文件依赖管理"""
    setup_logging(
        level=os.getenv("DTSM_LOG_LEVEL", "WARNING"),
        json_output=os.getenv("DTSM_LOG_JSON", "") == "1",
    )
    try:
        cfg = init_config(settings)
    except DtsmError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e
    ctx.obj = {"config": cfg, "manifest": manifest or cfg.manifest}


# 注册各领域子命令
from dtsm.cli.cmd_index import register as _reg_index  # noqa: E402
from dtsm.cli.cmd_manifest import register as _reg_manifest  # noqa: E402

_reg_index(main)
_reg_manifest(main)
