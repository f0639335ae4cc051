# agencycrm/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|test|prod
    app_name: str = "Agency CRM"
    app_version: str = "1.0.0"
    database_url: str = "sqlite:///./agencycrm.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- JWT ----
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days

    # ---- Passwords ----
    password_pbkdf2_iters: int = 210_000

    # ---- Uploads ----
    upload_dir: str = "./uploads"
    max_upload_mb: int = 10

    # ---- Pagination ----
    default_page_size: int = 20
    max_page_size: int = 100

    @property
    def is_prod(self) -> bool:
        return (self.app_env or "local").strip().lower() in ("prod", "production")

    @property
    def expose_error_details(self) -> bool:
        # stack traces and store error codes only leave the process outside prod
        return not self.is_prod

    def model_post_init(self, __context) -> None:
        if self.is_prod:
            if self.jwt_secret == DEV_JWT_SECRET:
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
