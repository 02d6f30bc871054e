from typing import Any


def success_response(data: Any, msg: str = "ok", code: str = "OK") -> dict[str, Any]:
    """Return payload formatted per project contract."""
    return {"code": code, "msg": msg, "data": data}


def error_response(msg: str, code: str = "INTERNAL_SERVER_ERROR", data: Any = None) -> dict[str, Any]:
    return {"code": code, "msg": msg, "data": data}
