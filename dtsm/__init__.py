"""dtsm - TypeScript 声明文件依赖管理"""

__version__ = "0.4.0"
