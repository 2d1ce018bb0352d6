"""
Runtime settings for chunkscribe.

Values are read from the environment (prefix ``CHUNKSCRIBE_``) and from an
optional ``.env`` file in the working directory. The API key is also accepted
under the plain ``GEMINI_API_KEY`` or ``API_KEY`` names.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chunkscribe.adapters.gemini_transcription import DEFAULT_GEMINI_MODEL
from chunkscribe.components.segmentation import DEFAULT_SAMPLE_RATE, SegmentationConfig


RuntimeName = Literal["auto", "interactive", "batch"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHUNKSCRIBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("CHUNKSCRIBE_API_KEY", "GEMINI_API_KEY", "API_KEY"),
    )
    model: str = DEFAULT_GEMINI_MODEL
    chunk_minutes: float = Field(default=20.0, gt=0)
    overlap_minutes: float = Field(default=0.5, ge=0)
    sample_rate: int = Field(default=DEFAULT_SAMPLE_RATE, gt=0)
    runtime: RuntimeName = "auto"
    store_path: Path | None = None
    debug: bool = False

    @field_validator("model")
    @classmethod
    def _model_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("model must not be empty")
        return value.strip()

    def segmentation_config(self) -> SegmentationConfig:
        return SegmentationConfig.from_minutes(
            self.chunk_minutes,
            self.overlap_minutes,
            sample_rate=self.sample_rate,
        )


def load_settings(**overrides: object) -> Settings:
    return Settings(**overrides)


__all__ = ["RuntimeName", "Settings", "load_settings"]
