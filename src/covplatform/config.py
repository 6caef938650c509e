# src/covplatform/config.py
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .contracts.core import KNOWN_STATS


class Settings(BaseSettings):
    """
    Config unificada del proyecto. No toca red ni disco.
    Debe ser construida y provista por composition/di.py (CLI/UI/adapters).
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="COV_",
        env_nested_delimiter="__",
        extra="forbid",
        frozen=True,
    )

    # --- servicios externos ---
    catalog_url: str = "http://localhost:8081"
    zonal_stats_url: str = "http://localhost:8082"
    source_api_url: str = "https://api.datamermaid.org/v1"
    source_api_token: Optional[str] = None  # el token lo entrega el llamador; no hay login aquí

    # --- extracción ---
    buffer_radius_m: float = Field(1000.0, gt=0)
    extraction_concurrency: int = Field(10, ge=1)
    protocol_fetch_concurrency: int = Field(5, ge=1)
    http_timeout_s: float = Field(60.0, gt=0)
    default_stats: Annotated[Tuple[str, ...], NoDecode] = ("mean", "min", "max")

    # --- logging ---
    log_level: str = "INFO"

    # ----------------------------
    # Normalizadores / validadores
    # ----------------------------
    @field_validator("catalog_url", "zonal_stats_url", "source_api_url", mode="before")
    @classmethod
    def _strip_url(cls, v: str) -> str:
        v2 = str(v).strip().rstrip("/")
        if not v2:
            raise ValueError("la URL del servicio no puede ser vacía")
        return v2

    @field_validator("default_stats", mode="before")
    @classmethod
    def _split_stats(cls, v):
        # permite COV_DEFAULT_STATS="mean,max"
        if isinstance(v, str):
            return tuple(s.strip() for s in v.split(",") if s.strip())
        return v

    @field_validator("default_stats")
    @classmethod
    def _known_stats(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if not v:
            raise ValueError("default_stats no puede ser vacío")
        unknown = [s for s in v if s not in KNOWN_STATS]
        if unknown:
            raise ValueError(f"default_stats usa estadísticas desconocidas: {sorted(unknown)}")
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper() or "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Instancia cacheada. Úsala SOLO desde composition/di.py o CLI.
    Prohibido usarla en services/. Para tests, recuerda limpiar:
        get_settings.cache_clear()
    """
    return Settings()
