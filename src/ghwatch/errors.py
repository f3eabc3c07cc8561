from __future__ import annotations


class GhWatchError(Exception):
    """ghwatch 所有可预期异常的基类。"""


class NotFoundError(GhWatchError):
    """
    远端不存在该类活动（例如仓库还没有任何 release）。

    Checker 会把它当作“暂时没有可报告的内容”，不会通知 sink。
    """


class FetchError(GhWatchError):
    """拉取远端数据失败（网络错误、非 404 的 HTTP 错误、响应格式不符等）。"""


class PersistError(GhWatchError):
    """写入状态存储失败；此时不得发送通知。"""


class ConfigLoadError(GhWatchError):
    """读取或解析仓库配置失败。"""


class SinkDeliveryError(GhWatchError):
    """通知渠道投递失败；由 fan-out 统一吞掉并记录日志。"""
