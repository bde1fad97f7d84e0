from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

import httpx


API_KEY_REQUIRED_MESSAGE = "API key is required. Please configure it in settings."
API_KEY_INVALID_MESSAGE = "API key is required or invalid. Please configure your API key in settings."


class ErrorKind(str, Enum):
    AUTH = "auth"
    TRANSIENT = "transient"
    REQUEST = "request"
    VALIDATION = "validation"


def safe_serialize(data: Any) -> Any:
    """任意の値を JSON 化可能な値に変換"""
    if data is None or isinstance(data, (str, int, float, bool)):
        return data
    if isinstance(data, (datetime, date)):
        return data.isoformat()
    if isinstance(data, Enum):
        return safe_serialize(data.value)
    if isinstance(data, BaseException):
        return {"message": str(data), "name": type(data).__name__}
    if is_dataclass(data) and not isinstance(data, type):
        return safe_serialize(asdict(data))
    if isinstance(data, dict):
        return {str(key): safe_serialize(value) for key, value in data.items()}
    if isinstance(data, (list, tuple, set)):
        return [safe_serialize(item) for item in data]
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return str(data)


class GamePlanError(Exception):
    """GamePlan 連携・クエリ実行時のエラー基底クラス"""

    kind: ErrorKind = ErrorKind.REQUEST

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        status_text: Optional[str] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status_text = status_text
        self.payload = payload

    def user_message(self) -> str:
        """ユーザー向けのエラーメッセージ"""
        message = self.message or ""
        lowered = message.lower()
        status = self.status_code

        if self.kind is ErrorKind.AUTH:
            return API_KEY_INVALID_MESSAGE
        if self.kind is ErrorKind.VALIDATION:
            return message
        if "timeout" in lowered or "timed out" in lowered or status == 504:
            return "Request timed out. The server may be slow or unavailable. Please try again."
        if status is None and ("fetch" in lowered or "network" in lowered or "connect" in lowered):
            return "Network error. Please check your internet connection and try again."
        if status is not None and status >= 500:
            return "Server error. Please try again later or contact support if the problem persists."
        if status == 404:
            return "The requested resource was not found. Please check your API endpoint configuration."
        if status == 403:
            return "Access forbidden. Please check your API key permissions."
        if status == 429:
            return "Too many requests. Please wait a moment and try again."
        if message:
            return message
        if self.status_text:
            return self.status_text
        return "An unexpected error occurred. Please try again."

    def to_dict(self) -> Dict[str, Any]:
        """シリアライズ可能なプレーンな辞書に変換"""
        return {
            "kind": self.kind.value,
            "message": self.user_message(),
            "detail": self.message,
            "status_code": self.status_code,
            "status_text": self.status_text,
            "data": safe_serialize(self.payload),
        }


class GamePlanAuthError(GamePlanError):
    kind = ErrorKind.AUTH


class GamePlanTransientError(GamePlanError):
    kind = ErrorKind.TRANSIENT


class GamePlanRequestError(GamePlanError):
    kind = ErrorKind.REQUEST


class QueryValidationError(GamePlanError):
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message, status_code=400, status_text="Bad Request", payload=payload)


def _payload_mentions_api_key(payload: Any) -> bool:
    if isinstance(payload, dict):
        for key in ("message", "exc_type", "exception", "_error_message"):
            value = payload.get(key)
            if isinstance(value, str) and "API key" in value:
                return True
        return False
    return isinstance(payload, str) and "API key" in payload


def _response_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def classify_http_error(error: Exception) -> GamePlanError:
    """httpx の例外を GamePlanError に分類（分類はここで一度だけ行う）"""
    if isinstance(error, GamePlanError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        status = response.status_code
        payload = _response_payload(response)
        status_text = response.reason_phrase or None
        message = f"GamePlan API request failed with status {status}"
        if status == 401 or _payload_mentions_api_key(payload):
            return GamePlanAuthError(message, status, status_text, payload)
        if status == 429 or status >= 500:
            return GamePlanTransientError(message, status, status_text, payload)
        return GamePlanRequestError(message, status, status_text, payload)

    if isinstance(error, httpx.TimeoutException):
        return GamePlanTransientError(f"GamePlan API request timeout: {error}", 504, "Gateway Timeout")

    if isinstance(error, httpx.TransportError):
        return GamePlanTransientError(f"GamePlan API network error: {error}")

    message = str(error) or type(error).__name__
    if "API key" in message:
        return GamePlanAuthError(message, 401, "Unauthorized")
    return GamePlanRequestError(message)


def is_auth_error(error: BaseException) -> bool:
    return isinstance(error, GamePlanError) and error.kind is ErrorKind.AUTH
