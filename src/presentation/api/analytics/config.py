from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    gameplan_api_base_url: str = "http://localhost:8000/api/resource/"
    gameplan_api_key: str = ""
    gameplan_auth_header: str = "Authorization"
    gameplan_auth_prefix: str = "token"
    gameplan_page_size: int = 1000
    gameplan_timeout_seconds: float = 30.0
    gameplan_max_retries: int = 3
    gameplan_retry_backoff_seconds: float = 1.0
    cache_expiry_minutes: float = 5.0
    api_key_store_path: str = "~/.gameplan_analytics/credentials.json"
    env: str = "local"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def app_name_suffix(self) -> str:
        """環境に応じてアプリ名の接尾辞を返す"""
        if self.env == "production":
            return ""
        else:
            return " (Dev)"
