"""业务异常

路由层不直接拼装错误响应，而是抛出这些异常，由 main.py 中注册的处理器统一转换为
``{"detail": message}`` JSON 响应。
"""


class DashLinkError(Exception):
    """业务异常基类"""
    status_code = 500
    default_message = "服务器内部错误"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DashLinkError):
    """输入校验失败"""
    status_code = 400
    default_message = "无效的输入"


class NotFound(DashLinkError):
    """资源不存在（或不属于当前用户）"""
    status_code = 404
    default_message = "链接不存在"


class QuotaExceeded(DashLinkError):
    """用户链接数量已达上限"""
    status_code = 400
    default_message = "链接数量已达上限"


class RateLimited(DashLinkError):
    """操作过于频繁"""
    status_code = 429
    default_message = "操作过于频繁，请稍后再试"


class FeatureDisabled(DashLinkError):
    """功能被管理员关闭"""
    status_code = 403
    default_message = "管理员已关闭个人链接功能"


class UpstreamFetchError(DashLinkError):
    """远程图标下载失败"""
    status_code = 502
    default_message = "图标下载失败"


class InternalError(DashLinkError):
    """未预期的错误，对外只返回通用信息"""
    status_code = 500
