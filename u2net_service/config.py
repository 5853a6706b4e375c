"""
Configuration loader for the u2net cutout pipeline.

Environment variables are centralized here to keep the rest of the code
focused on image processing and to make operational tuning clear.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Model + preprocessing
    u2net_model_path: Path = Field(Path("u2net.onnx"))
    u2net_intra_threads: int = Field(4, ge=1)
    u2net_input_size: int = Field(320, ge=1)

    # Compositing + visualization
    default_threshold: int = Field(128)
    mask_gamma: float = Field(0.5, gt=0.0)

    # Output compression. Disabling it saves the RGBA result directly.
    compress_output: bool = Field(True)
    quant_min_quality: int = Field(60)
    quant_max_quality: int = Field(100)
    quant_dithering_level: float = Field(1.0, ge=0.0, le=1.0)
    quant_max_colors: int = Field(256)
    png_optimize_level: int = Field(4)
    png_optimize_alpha: bool = Field(True)
    png_zopfli_iterations: Optional[int] = Field(None, ge=1)

    # Sticker border cleanup
    sticker_min_island_ratio: float = Field(0.05, ge=0.0, le=1.0)
    sticker_fringe_alpha: int = Field(128, ge=0, le=255)

    log_level: str = Field("INFO")

    # Debugging
    debug: bool = Field(False)
    debug_output_dir: Path = Field(Path("/tmp/u2net_debug"))

    @field_validator("default_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if not 0 <= v <= 255:
            raise ValueError("DEFAULT_THRESHOLD must be within 0..255")
        return v

    @field_validator("quant_min_quality", "quant_max_quality")
    @classmethod
    def validate_quality(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("quantizer quality must be within 0..100")
        return v

    @field_validator("quant_max_colors")
    @classmethod
    def validate_max_colors(cls, v: int) -> int:
        if not 2 <= v <= 256:
            raise ValueError("QUANT_MAX_COLORS must be within 2..256")
        return v

    @field_validator("png_optimize_level")
    @classmethod
    def validate_optimize_level(cls, v: int) -> int:
        if not 0 <= v <= 6:
            raise ValueError("PNG_OPTIMIZE_LEVEL must be within 0..6")
        return v

    @model_validator(mode="after")
    def validate_quality_range(self) -> "Settings":
        if self.quant_min_quality > self.quant_max_quality:
            raise ValueError("QUANT_MIN_QUALITY must not exceed QUANT_MAX_QUALITY")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every call."""
    return Settings()
