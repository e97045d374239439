from __future__ import annotations

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "hirelane"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8787
    log_level: str = "INFO"
    secret_key: str = "change-me"

    database_url: str = "sqlite:///./hirelane.db"
    cors_origins: str = "http://127.0.0.1:5173"

    enforce_state_transitions: bool = False
    admin_list_max_limit: int = 500

    drive_auth_mode: str = "auto"
    drive_folder_id: str = ""
    drive_folder_name: str = "hirelane-cvs"
    drive_timeout_sec: int = 30
    drive_upload_mime_type: str = "application/octet-stream"
    google_client_id: str = ""
    google_client_secret: str = ""
    google_refresh_token: str = ""
    google_token_uri: str = "https://oauth2.googleapis.com/token"
    google_service_account_json: str = ""

    reconcile_batch_size: int = 50

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("drive_auth_mode")
    @classmethod
    def validate_drive_auth_mode(cls, value: str) -> str:
        allowed = {"auto", "oauth_refresh_token", "service_account_json", "application_default"}
        if value not in allowed:
            raise ValueError(f"drive_auth_mode must be one of {sorted(allowed)}")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
