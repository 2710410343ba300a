"""输入校验与清洗

所有函数都是无状态的纯函数，校验失败统一抛出 ValidationError。
validate_download_url 会做一次 DNS 解析，是系统对外发起请求前的 SSRF 边界。
"""
import html
import ipaddress
import re
import socket
import warnings
from typing import Any, Iterable
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from ..exceptions import ValidationError

warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)


# ==================== 常量 ====================

ALLOWED_SCHEMES = ["http", "https"]
ALLOWED_TARGETS = ["_blank", "_self"]

# 云厂商元数据服务
BLOCKED_HOSTNAMES = [
    "metadata.google.internal",
    "169.254.169.254",
    "instance-data",
    "metadata.azure.com",
    "metadata.packet.net",
]

# 以这些前缀开头的主机名或 IP 一律视为本机
LOCALHOST_PATTERNS = [
    "localhost",
    "127.",
    "0.0.0.0",
    "::1",
    "[::1]",
]

GROUP_ID_PATTERN = re.compile(r"[a-zA-Z0-9_\-]+")
FILENAME_PATTERN = re.compile(r"[a-zA-Z0-9_\-.]+")
ICON_FILENAME_PREFIX = "icon_"


# ==================== 文本 ====================

def sanitize_text(text: str, max_length: int = 255) -> str:
    """去除首尾空白和全部标签，转义特殊字符，再按字符数截断"""
    if text is None:
        return ""
    text = str(text).strip()
    if text:
        text = BeautifulSoup(text, "html.parser").get_text()
    text = html.escape(text, quote=True)
    if len(text) > max_length:
        text = text[:max_length]
    return text


# ==================== URL ====================

def validate_url(url: str) -> str:
    """只允许 http/https，且必须带主机名

    Returns:
        去掉首尾空白后的 URL
    """
    url = (url or "").strip()
    if not url:
        raise ValidationError("URL 不能为空")

    if any(ch.isspace() or ord(ch) < 32 for ch in url):
        raise ValidationError("无效的 URL 格式")

    try:
        parsed = urlsplit(url)
        # 访问 port 会校验端口格式
        parsed.port
    except ValueError:
        raise ValidationError("无效的 URL 格式")

    if not parsed.scheme:
        raise ValidationError("URL 必须包含协议 (http:// 或 https://)")

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise ValidationError(f"不允许的协议: {parsed.scheme}，仅支持 http/https")

    if not parsed.hostname:
        raise ValidationError("URL 缺少主机名")

    return url


def _is_localhost(value: str) -> bool:
    value = value.lower()
    return any(value.startswith(pattern) for pattern in LOCALHOST_PATTERNS)


def _check_ip(ip_str: str) -> None:
    if _is_localhost(ip_str):
        raise ValidationError("禁止访问本机或回环地址")

    try:
        ip = ipaddress.ip_address(ip_str.split("%", 1)[0])
    except ValueError:
        raise ValidationError(f"无法识别的 IP 地址: {ip_str}")

    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    if str(ip) in BLOCKED_HOSTNAMES:
        raise ValidationError("禁止访问该地址")
    if ip.is_loopback or ip.is_unspecified:
        raise ValidationError("禁止访问本机或回环地址")
    if ip.is_link_local:
        raise ValidationError("禁止访问链路本地地址")
    if ip.is_private or ip.is_reserved or ip.is_multicast or not ip.is_global:
        raise ValidationError("禁止访问内网或保留地址")


def resolve_host(hostname: str) -> list[str]:
    """解析主机名得到全部 IP（IPv4 + IPv6）"""
    try:
        ipaddress.ip_address(hostname)
        return [hostname]
    except ValueError:
        pass

    try:
        addr_info = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError):
        raise ValidationError(f"无法解析域名: {hostname}")

    return list(dict.fromkeys(info[4][0] for info in addr_info))


def validate_download_url(url: str) -> str:
    """在 validate_url 基础上防止 SSRF：禁止元数据服务、本机、内网和链路本地地址"""
    url = validate_url(url)
    hostname = urlsplit(url).hostname.lower()

    if hostname in BLOCKED_HOSTNAMES:
        raise ValidationError("禁止访问该地址")

    if _is_localhost(hostname) or hostname.endswith(".localhost"):
        raise ValidationError("禁止访问本机或回环地址")

    for ip_str in resolve_host(hostname):
        _check_ip(ip_str)

    return url


# ==================== 枚举 ====================

def validate_target(target: str) -> str:
    if target not in ALLOWED_TARGETS:
        raise ValidationError("无效的打开方式，只能是 _blank 或 _self")
    return target


def validate_groups(groups: Iterable[Any]) -> list[str]:
    """校验用户组 ID 列表，保持顺序并去重"""
    if groups is None:
        return []
    if isinstance(groups, (str, bytes)) or not isinstance(groups, (list, tuple, set)):
        raise ValidationError("用户组必须是列表")

    validated = []
    for group_id in groups:
        if not isinstance(group_id, str):
            raise ValidationError("用户组 ID 必须是字符串")
        if not GROUP_ID_PATTERN.fullmatch(group_id):
            raise ValidationError(f"无效的用户组 ID: {group_id}")
        if group_id not in validated:
            validated.append(group_id)
    return validated


def validate_integer(value: int, minimum: int, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("必须是整数")
    if value < minimum or value > maximum:
        raise ValidationError(f"取值必须在 {minimum} 到 {maximum} 之间")
    return value


# ==================== 文件名 ====================

def validate_filename(filename: str) -> str:
    """文件名会作为存储键使用，禁止路径穿越"""
    if not filename:
        raise ValidationError("文件名不能为空")
    if "\0" in filename:
        raise ValidationError("文件名不能包含空字节")
    if "/" in filename or "\\" in filename:
        raise ValidationError("文件名不能包含目录分隔符")
    if ".." in filename:
        raise ValidationError("文件名中检测到路径穿越")
    if not FILENAME_PATTERN.fullmatch(filename):
        raise ValidationError("文件名只能包含字母、数字、横线、下划线和点")
    return filename


def validate_icon_filename(filename: str) -> str:
    validate_filename(filename)
    if not filename.startswith(ICON_FILENAME_PREFIX):
        raise ValidationError(f'图标文件名必须以 "{ICON_FILENAME_PREFIX}" 开头')
    return filename
