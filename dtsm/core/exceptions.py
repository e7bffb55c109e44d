"""统一异常体系

所有会终止整个调用的错误继承 DtsmError，CLI 层据此输出友好提示。
单个检索词 / 单个节点级别的失败（未找到、匹配不唯一、拉取失败）
不会以异常形式逃出批量操作，而是记录在结果对象中。
"""

from __future__ import annotations


class DtsmError(Exception):
    """dtsm 基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(DtsmError):
    """settings 文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(DtsmError, ValueError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class ExecutionError(DtsmError):
    """外部命令（git）执行失败"""

    code = "EXECUTION_ERROR"


class IndexUnavailableError(DtsmError):
    """本地索引仓库从未同步过，需要先执行 fetch"""

    code = "INDEX_UNAVAILABLE"


class ManifestCorruptError(DtsmError):
    """清单文件无法解析，拒绝合并以免静默丢失数据"""

    code = "MANIFEST_CORRUPT"


class ManifestExistsError(DtsmError):
    """init 时清单文件已存在"""

    code = "MANIFEST_EXISTS"


class FetchError(DtsmError):
    """单个声明文件拉取失败（节点级，可恢复）"""

    code = "FETCH_ERROR"

    def __init__(self, identifier: str, cause: str) -> None:
        super().__init__(f"拉取失败 {identifier}: {cause}")
        self.identifier = identifier
        self.cause = cause


class ManifestNotFoundError(DtsmError):
    """需要已有清单的操作（配方回放、update）找不到清单文件"""

    code = "MANIFEST_NOT_FOUND"
