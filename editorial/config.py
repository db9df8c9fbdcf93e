from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Editorial Console"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./editorial.db"

    # Content settings
    locales: list[str] = ["en", "ar", "zh", "ru", "nl"]
    primary_locale: str = "en"
    page_size: int = 10
    # "auto", "transaction" or "two_phase"
    rename_strategy: str = "auto"

    # Media settings
    upload_dir: str = "uploads"
    media_base_url: str = "/media/"
    media_max_file_size: int = 10 * 1024 * 1024  # 10MB

    # CORS settings
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
