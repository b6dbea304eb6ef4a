# backend/ems/schemas/common.py

from pydantic import BaseModel


def _strip_and_reject_blank(v, field_name: str):
    """
    문자열 양쪽 공백 제거 후,
    빈 문자열이면 ValidationError 유발을 위해 ValueError 발생.
    """
    if v is None or not isinstance(v, str):
        return v
    stripped = v.strip()
    if stripped == "":
        raise ValueError(f"{field_name} must not be blank")
    return stripped


def _strip_to_none(v):
    """
    Optional[str] 입력: "   " -> None, 그 외는 strip된 문자열
    """
    if v is None or not isinstance(v, str):
        return v
    s = v.strip()
    return s or None


class MessageResponse(BaseModel):
    message: str
