from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    storage_backend: str = "memory"
    database_url: str = "sqlite:///./medireport.db"
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    ollama_url: str = "http://localhost:11434"
    ollama_timeout_seconds: float = 120.0
    parameter_match_threshold: int = 85
    allowed_origins: str = "http://localhost:8501"


settings = Settings()
