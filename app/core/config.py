import tempfile
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """Application settings loaded in from env vars"""
    model_config = SettingsConfigDict(case_sensitive=False, env_file='.env', extra="ignore")

    database_url: str = "sqlite:///./resume_optimizer.db"

    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    openai_temperature: float = 0.2
    openai_timeout: float = 60.0
    openai_max_retries: int = 2

    # temporary resume uploads
    upload_dir: Path = Path(tempfile.gettempdir()) / "resume-optimizer"
    file_ttl_seconds: int = 30 * 60
    sweep_interval_seconds: int = 5 * 60
    max_upload_bytes: int = 5 * 1024 * 1024

    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    app_name: str = "Resume Optimizer API"
    log_level: str = "INFO"
    debug: bool = False
    demo_mode: bool = False

settings = Settings()
