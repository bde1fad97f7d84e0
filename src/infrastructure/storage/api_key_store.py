"""
APIキーのローカル保存
キー名ごとに文字列を JSON ファイルへ保存・取得・削除する
"""
import json
import logging
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

API_KEY_STORAGE_KEY = "gameplan_api_key"


class ApiKeyStore:
    """JSONファイルを使用したAPIキーストア"""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"❌ APIキーファイル読み込みエラー: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): str(value) for key, value in data.items() if isinstance(value, str)}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def get(self, key: str = API_KEY_STORAGE_KEY) -> Optional[str]:
        value = self._load().get(key)
        return value or None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)
        logger.info(f"✅ APIキーを保存しました: {key}")

    def clear(self, key: str = API_KEY_STORAGE_KEY) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)
            logger.info(f"🗑️ APIキーを削除しました: {key}")
