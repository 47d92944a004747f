from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    log_level: str = Field(default="INFO", alias="PIIGUARD_LOG_LEVEL")

    max_text_length: int = Field(default=50_000, gt=0, alias="PIIGUARD_MAX_TEXT_LENGTH")
    confidence_threshold: float = Field(
        default=0.7, ge=0.0, le=1.0, alias="PIIGUARD_CONFIDENCE_THRESHOLD"
    )
    enable_nlp: bool = Field(default=True, alias="PIIGUARD_ENABLE_NLP")
    context_window: int = Field(default=10, ge=0, alias="PIIGUARD_CONTEXT_WINDOW")
    spacy_model: str | None = Field(default=None, alias="PIIGUARD_SPACY_MODEL")
    phone_default_region: str | None = Field(default=None, alias="PIIGUARD_PHONE_DEFAULT_REGION")

    policy_preset: str = Field(default="permissive", alias="PIIGUARD_POLICY_PRESET")
    policy_preset_dir: str | None = Field(default=None, alias="PIIGUARD_POLICY_PRESET_DIR")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
