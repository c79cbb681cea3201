"""Success envelope shared by every route."""

from typing import Any, Optional


def success(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body
