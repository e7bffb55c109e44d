"""CLI — 索引相关命令: fetch, search, outdated"""

from __future__ import annotations

import click

from dtsm.cli import handle_errors, open_manager


def register(group: click.Group) -> None:
    group.add_command(fetch)
    group.add_command(search)
    group.add_command(outdated)


@click.command()
@click.pass_context
@handle_errors
def fetch(ctx: click.Context) -> None:
    """同步远程索引仓库"""
    manager = open_manager(ctx, auto_sync=False)
    sha = manager.fetch()
    click.echo(f"索引已更新: {sha[:12]} ({len(manager.catalog)} 个文件)")


@click.command()
@click.argument("term")
@click.pass_context
@handle_errors
def search(ctx: click.Context, term: str) -> None:
    """按关键字搜索声明文件"""
    found = open_manager(ctx).search(term)
    if not found:
        click.echo(f"未找到匹配 '{term}' 的文件。")
        return
    for identifier in found:
        click.echo(identifier)


@click.command()
@click.pass_context
@handle_errors
def outdated(ctx: click.Context) -> None:
    """列出记录版本落后于索引的已安装文件"""
    stale = open_manager(ctx).outdated()
    if not stale:
        click.echo("全部已是最新。")
        return
    for identifier in stale:
        click.echo(identifier)
