"""路由共用的序列化与导入解析"""
import json
from typing import Any

from fastapi import Request
from starlette.datastructures import UploadFile

from ..config import settings
from ..exceptions import ValidationError
from ..models import Link
from ..schemas import LinkResponse

GLOBAL_ICON_ROUTE = "get_link_icon"
USER_ICON_ROUTE = "get_user_link_icon"


def serialize_link(request: Request, link: Link, icon_route: str = GLOBAL_ICON_ROUTE) -> LinkResponse:
    """有图标时附带图标的绝对地址"""
    response = LinkResponse.model_validate(link)
    if link.icon_path:
        response.icon_url = str(request.url_for(icon_route, link_id=link.id))
    return response


async def read_upload(file: UploadFile, max_bytes: int, too_large_message: str) -> bytes:
    """读取上传文件，超过 max_bytes 直接拒绝"""
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise ValidationError(too_large_message)
    return content


async def read_body(request: Request, max_bytes: int, too_large_message: str) -> bytes:
    """按块读取请求体，累计超过 max_bytes 立即拒绝"""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise ValidationError(too_large_message)

    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise ValidationError(too_large_message)
        chunks.append(chunk)
    return b"".join(chunks)


def json_depth(value: Any) -> int:
    """容器嵌套深度，标量为 0"""
    depth = 0
    stack = [(value, 1)]
    while stack:
        current, level = stack.pop()
        if isinstance(current, dict):
            depth = max(depth, level)
            stack.extend((item, level + 1) for item in current.values())
        elif isinstance(current, list):
            depth = max(depth, level)
            stack.extend((item, level + 1) for item in current)
    return depth


async def read_import_payload(request: Request, max_links: int) -> list:
    """
    解析导入内容

    支持 multipart 表单中的 file 字段，或直接以 JSON 作为请求体。

    Raises:
        ValidationError: 缺少文件、文件过大、JSON 无效、嵌套过深或链接数量超限
    """
    max_bytes = settings.IMPORT_MAX_BYTES
    too_large = f"导入文件过大，最大支持 {max_bytes // 1024 // 1024}MB"

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        file = form.get("file")
        if not isinstance(file, UploadFile):
            raise ValidationError("没有上传文件")
        raw = await read_upload(file, max_bytes, too_large)
    else:
        raw = await read_body(request, max_bytes, too_large)

    try:
        data = json.loads(raw)
    except (ValueError, RecursionError):
        raise ValidationError("无效的 JSON 格式")

    if json_depth(data) > settings.IMPORT_MAX_DEPTH:
        raise ValidationError("JSON 嵌套层级过深")
    if not isinstance(data, list):
        raise ValidationError("无效的 JSON 格式，需要链接数组")
    if len(data) > max_links:
        raise ValidationError(f"单次最多导入 {max_links} 个链接")
    return data
