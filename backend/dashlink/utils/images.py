"""图标文件处理：类型识别、位图校验、SVG 清洗"""
import io
import re
import struct
import xml.etree.ElementTree as ET
from typing import Optional

from PIL import Image

from ..exceptions import ValidationError

# 允许的图标类型 -> 文件扩展名
ALLOWED_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/svg+xml": "svg",
    "image/webp": "webp",
}

MIME_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-png": "image/png",
    "image/svg": "image/svg+xml",
}

PIL_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", XLINK_NS)

# 小写的本地标签名
DANGEROUS_ELEMENTS = {"script", "foreignobject", "iframe", "embed", "object", "handler", "listener"}
DANGEROUS_URL_SCHEMES = ("javascript:", "data:", "vbscript:")

DOCTYPE_PATTERN = re.compile(rb"<!DOCTYPE[^\[>]*(\[.*?\])?\s*>", re.IGNORECASE | re.DOTALL)
ENTITY_PATTERN = re.compile(rb"<!ENTITY", re.IGNORECASE)
SVG_ROOT_PATTERN = re.compile(r"<svg[\s>/]", re.IGNORECASE)
CONTROL_CHARS = re.compile(r"[\x00-\x20]")


def normalize_mime(mime_type: Optional[str]) -> str:
    """去掉参数部分并统一别名，如 image/jpg -> image/jpeg"""
    mime = (mime_type or "").split(";")[0].strip().lower()
    return MIME_ALIASES.get(mime, mime)


# ==================== 类型识别 ====================

def _open_image(content: bytes):
    return Image.open(io.BytesIO(content))


def detect_mime(content: bytes) -> Optional[str]:
    """根据文件内容识别图片类型，无法识别返回 None"""
    if not content:
        return None
    try:
        with _open_image(content) as img:
            mime = PIL_FORMATS.get(img.format or "")
            if mime:
                return mime
    except (OSError, SyntaxError, ValueError, struct.error, Image.DecompressionBombError):
        pass

    head = content[:4096].decode("utf-8-sig", errors="ignore").lstrip()
    if head.startswith("<") and SVG_ROOT_PATTERN.search(head):
        return "image/svg+xml"
    return None


def verify_raster(content: bytes) -> None:
    """结构性校验位图，损坏或伪造的文件会被拒绝"""
    try:
        with _open_image(content) as img:
            img.verify()
    except (OSError, SyntaxError, ValueError, struct.error, Image.DecompressionBombError):
        raise ValidationError("图片文件已损坏或格式无效")


# ==================== SVG 清洗 ====================

def _local_name(name: str) -> str:
    return name.rsplit("}", 1)[-1].lower()


def _is_dangerous_url(value: str) -> bool:
    compact = CONTROL_CHARS.sub("", value).lower()
    return compact.startswith(DANGEROUS_URL_SCHEMES)


def _clean_attributes(element: ET.Element) -> None:
    for name, value in list(element.attrib.items()):
        local = _local_name(name)
        if local.startswith("on"):
            del element.attrib[name]
        elif local == "href" and _is_dangerous_url(value):
            del element.attrib[name]
        elif local == "style":
            lowered = CONTROL_CHARS.sub("", value).lower()
            if "javascript:" in lowered or "expression(" in lowered:
                del element.attrib[name]


def sanitize_svg(content: bytes) -> bytes:
    """
    清洗 SVG 图标

    - 去掉 DOCTYPE，拒绝实体声明
    - 删除 script、foreignObject 等可执行元素
    - 删除 on* 事件属性、javascript:/data: 链接和危险的内联样式

    Raises:
        ValidationError: 内容为空或不是合法的 SVG
    """
    if not content or not content.strip():
        raise ValidationError("SVG 文件为空")

    content = DOCTYPE_PATTERN.sub(b"", content)
    if ENTITY_PATTERN.search(content):
        raise ValidationError("SVG 不允许包含实体声明")

    try:
        root = ET.fromstring(content)
    except ET.ParseError:
        raise ValidationError("无效的 SVG 文件")

    if _local_name(root.tag) != "svg":
        raise ValidationError("无效的 SVG 文件")

    # 先收集再删除，避免遍历过程中修改树
    for parent in list(root.iter()):
        for child in list(parent):
            if _local_name(child.tag) in DANGEROUS_ELEMENTS:
                parent.remove(child)

    for element in root.iter():
        _clean_attributes(element)

    result = ET.tostring(root, encoding="unicode").encode("utf-8")
    if not result.strip():
        raise ValidationError("SVG 清洗后为空")
    return result
