"""
安全的 HTTP 客户端工具

用于从远程地址下载图标，包括：
- SSRF 防护（每一跳重定向都重新校验目标地址）
- 协议限制（只允许 http/https）
- 超时控制
- 响应大小限制（流式读取，超限立即中断）
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import httpx

from ..config import settings
from ..exceptions import DashLinkError, UpstreamFetchError
from ..services.validation import validate_download_url

logger = logging.getLogger(__name__)


# ==================== 安全配置 ====================

DEFAULT_USER_AGENT = "DashLink/1.0 (+icon-fetcher)"
REDIRECT_STATUSES = {301, 302, 303, 307, 308}


@dataclass
class DownloadedFile:
    """下载结果"""
    content: bytes
    content_type: str
    url: str


# ==================== HTTP 客户端 ====================

async def _read_limited(response: httpx.Response, max_size: int) -> bytes:
    content_length = response.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_size:
        raise UpstreamFetchError("图标文件过大")

    chunks = []
    received = 0
    async for chunk in response.aiter_bytes():
        received += len(chunk)
        if received > max_size:
            raise UpstreamFetchError("图标文件过大")
        chunks.append(chunk)
    return b"".join(chunks)


async def download_icon(
    url: str,
    timeout: Optional[float] = None,
    max_redirects: Optional[int] = None,
    max_size: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> DownloadedFile:
    """
    下载远程图标

    不使用 httpx 的自动跳转，而是手动处理 Location，
    保证每个跳转目标都经过同样的 SSRF 校验。

    Args:
        url: 图标地址
        timeout: 超时时间（秒）
        max_redirects: 最大重定向次数
        max_size: 最大响应大小（字节）
        transport: 自定义传输层（测试时注入 MockTransport）

    Returns:
        DownloadedFile

    Raises:
        ValidationError: 地址不安全
        UpstreamFetchError: 网络错误、非 200 状态、重定向过多或文件过大
    """
    timeout = settings.ICON_FETCH_TIMEOUT if timeout is None else timeout
    max_redirects = settings.ICON_FETCH_MAX_REDIRECTS if max_redirects is None else max_redirects
    max_size = settings.ICON_MAX_SIZE if max_size is None else max_size

    current_url = validate_download_url(url)
    headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "image/*"}

    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=False,
            transport=transport,
        ) as client:
            for _ in range(max_redirects + 1):
                async with client.stream("GET", current_url, headers=headers) as response:
                    if response.status_code in REDIRECT_STATUSES:
                        location = response.headers.get("location")
                        if not location:
                            raise UpstreamFetchError("重定向缺少 Location")
                        current_url = validate_download_url(urljoin(current_url, location))
                        logger.debug(f"[IconFetch] 跳转到 {current_url}")
                        continue

                    if response.status_code != 200:
                        raise UpstreamFetchError(f"图标下载失败: HTTP {response.status_code}")

                    content = await _read_limited(response, max_size)
                    content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
                    return DownloadedFile(content=content, content_type=content_type, url=current_url)
    except DashLinkError:
        raise
    except httpx.HTTPError as e:
        logger.warning(f"[IconFetch] 请求失败 {current_url}: {e}")
        raise UpstreamFetchError(f"图标下载失败: {e.__class__.__name__}")

    raise UpstreamFetchError("重定向次数过多")
