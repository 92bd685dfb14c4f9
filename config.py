import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    app_name: str
    log_level: str
    upload_dir: str
    export_dir: str
    github_token: Optional[str]
    ai_endpoint: str
    ai_model: str
    ai_temperature: float
    ai_max_tokens: int
    ai_sample_rows: int


def get_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "data-alchemist"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
        export_dir=os.getenv("EXPORT_DIR", "exports"),
        github_token=os.getenv("GITHUB_TOKEN") or None,
        ai_endpoint=os.getenv("GITHUB_AI_ENDPOINT", "https://models.github.ai/inference"),
        ai_model=os.getenv("GITHUB_AI_MODEL", "openai/gpt-4.1"),
        ai_temperature=float(os.getenv("AI_TEMPERATURE", "0.7")),
        ai_max_tokens=int(os.getenv("AI_MAX_TOKENS", "1000")),
        ai_sample_rows=int(os.getenv("AI_SAMPLE_ROWS", "5")),
    )
