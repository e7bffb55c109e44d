"""CLI — 清单相关命令: init, install, uninstall, update"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from dtsm.cli import handle_errors, open_manager
from dtsm.core.dep.models import InstallOptions, UninstallOptions

if TYPE_CHECKING:
    from dtsm.core.dep.models import InstallResult


def register(group: click.Group) -> None:
    group.add_command(init)
    group.add_command(install)
    group.add_command(uninstall)
    group.add_command(update)


def _echo_result(ctx: click.Context, result: InstallResult) -> None:
    """逐条输出安装结果，有失败条目时以退出码 1 结束"""
    prefix = "[dry-run] " if result.dry_run else ""
    for key, outcome in result.dependencies.items():
        if outcome.success:
            click.echo(f"{prefix}[OK  ] {key} -> {outcome.identifier} ({len(outcome.installed)} 个文件)")
        else:
            click.echo(f"{prefix}[FAIL] {key}: {outcome.error}")
            for candidate in outcome.candidates:
                click.echo(f"         {candidate}")
        for dep, err in outcome.failed_dependencies.items():
            click.echo(f"{prefix}       依赖拉取失败 {dep}: {err}")
    if result.saved:
        click.echo("清单已更新。")
    if not result.success:
        ctx.exit(1)


@click.command()
@click.option("--force", is_flag=True, help="清单已存在时覆盖")
@click.pass_context
@handle_errors
def init(ctx: click.Context, force: bool) -> None:
    """创建空清单文件"""
    path = open_manager(ctx, auto_sync=False).init(overwrite=force)
    click.echo(f"已创建: {path}")


@click.command()
@click.argument("terms", nargs=-1)
@click.option("--save", is_flag=True, help="写入清单")
@click.option("--dry-run", is_flag=True, help="只解析和汇报，不写任何文件")
@click.pass_context
@handle_errors
def install(ctx: click.Context, terms: tuple[str, ...], save: bool, dry_run: bool) -> None:
    """安装声明文件及其依赖；不指定检索词时按清单回放"""
    manager = open_manager(ctx)
    options = InstallOptions(save=save, dry_run=dry_run)
    if terms:
        result = manager.install(options, terms)
    else:
        result = manager.install_from_file(options)
    _echo_result(ctx, result)


@click.command()
@click.argument("term")
@click.option("--save", is_flag=True, help="同时从清单中删除条目")
@click.pass_context
@handle_errors
def uninstall(ctx: click.Context, term: str, save: bool) -> None:
    """卸载已安装的声明文件"""
    manager = open_manager(ctx, auto_sync=False)
    removed = manager.uninstall(UninstallOptions(path=str(manager.config_path), save=save), term)
    if not removed:
        click.echo(f"没有卸载任何文件: '{term}' 未匹配到唯一的已安装条目。")
        ctx.exit(1)
    for identifier in removed:
        click.echo(f"已卸载: {identifier}")


@click.command()
@click.option("--save", is_flag=True, help="把新的 ref 写入清单")
@click.option("--dry-run", is_flag=True, help="只解析和汇报，不写任何文件")
@click.pass_context
@handle_errors
def update(ctx: click.Context, save: bool, dry_run: bool) -> None:
    """把已安装文件更新到索引最新版本"""
    result = open_manager(ctx).update(InstallOptions(save=save, dry_run=dry_run))
    _echo_result(ctx, result)
