"""Success/error envelopes used by every router."""
from dataclasses import asdict, is_dataclass
from typing import Any, Optional


def _plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def success(data: Any = None, message: Optional[str] = None) -> dict:
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = _plain(data)
    return body


def error(message: str, errors: Optional[list] = None) -> dict:
    body = {'success': False, 'message': message}
    if errors:
        body['errors'] = errors
    return body
