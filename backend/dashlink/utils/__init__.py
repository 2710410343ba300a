"""工具函数"""
from .cache import counter_cache, create_counter_cache, hash_identifier
from .security import hash_password, verify_password, create_access_token, create_refresh_token, decode_token
from .http_client import download_icon, DownloadedFile

__all__ = [
    "counter_cache", "create_counter_cache", "hash_identifier",
    "hash_password", "verify_password", "create_access_token", "create_refresh_token", "decode_token",
    "download_icon", "DownloadedFile",
]
