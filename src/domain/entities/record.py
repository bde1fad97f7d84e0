from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Tuple


def split_known_fields(
    payload: Mapping[str, Any],
    known: Iterable[str],
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """API レコードを既知フィールドとそれ以外（extra）に分割"""
    known_names = set(known)
    named: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}
    for key, value in payload.items():
        if key in known_names:
            named[key] = value
        else:
            extra[key] = value
    return named, extra


def merge_record(named: Mapping[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    """extra に既知フィールドを上書きして API 形式の辞書に戻す"""
    merged = dict(extra)
    for key, value in named.items():
        if value is not None:
            merged[key] = value
    return merged


def optional_str(value: Any) -> Any:
    if value is None:
        return None
    return str(value)
