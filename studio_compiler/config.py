from __future__ import annotations

"""
Configuration loader for Studio Compiler.

- Reads environment variables (optionally from `.env`) via pydantic-settings.
- Provides typed sub-configs for the compiler service, the dependency engine,
  payload limits and CORS.
- Exposes a cached `get_settings()` accessor.

Environment variables:
    COMPILER_URL                  (str, default http://127.0.0.1:3000): compiler service base URL
    COMPILER_TIMEOUT_S            (float, default 30)
    COMPILER_MAX_RETRIES          (int, default 2):       retries on transport errors / 502-504
    COMPILER_BACKOFF_S            (float, default 0.25):  first backoff delay, doubled per attempt

Engine:
    ROOT_ESCAPE                   ("strict"|"lenient", default strict)
    SOURCE_SUFFIXES               (csv|json list, default ".sol")
    KNOWN_LIBRARIES               (json mapping):         {"@acme/": {"url":..., "docs":..., "description":...}}

Limits:
    MAX_FILES                     (int, default 100)
    MAX_FILE_SIZE                 (int bytes, default 512000)
    MAX_TOTAL_SIZE                (int bytes, default 2097152)

Logging / CORS:
    LOG_LEVEL, LOG_FORMAT
    CORS_ALLOW_ORIGINS            (csv|json list)

Notes
-----
- Lists accept comma-separated strings or JSON arrays.
- KNOWN_LIBRARIES entries are layered over the built-in registry.
"""

import json
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .engine.libraries import LibraryRegistry, default_registry

# ----------------------------- Helpers & Models ------------------------------ #


def _parse_list(val: Optional[str | List[str]], *, default: List[str]) -> List[str]:
    if val is None:
        return list(default)
    if isinstance(val, list):
        return [str(x) for x in val]
    s = val.strip()
    if not s:
        return []
    if s.startswith("[") and s.endswith("]"):
        try:
            return [str(x) for x in json.loads(s)]
        except ValueError:
            pass  # not JSON after all; treat as CSV
    return [x.strip() for x in s.split(",") if x.strip()]


class CompilerConfig(BaseModel):
    url: str = "http://127.0.0.1:3000"
    timeout_s: float = Field(30.0, gt=0)
    max_retries: int = Field(2, ge=0)
    backoff_s: float = Field(0.25, ge=0)


class EngineConfig(BaseModel):
    root_escape: Literal["strict", "lenient"] = "strict"
    source_suffixes: List[str] = Field(default_factory=lambda: [".sol"])
    known_libraries: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    @field_validator("source_suffixes", mode="before")
    @classmethod
    def _coerce_suffixes(cls, v):
        return _parse_list(v, default=[".sol"])

    @field_validator("known_libraries", mode="before")
    @classmethod
    def _parse_libraries(cls, v):
        if v is None:
            return {}
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return {}
            try:
                v = json.loads(s)
            except ValueError as e:
                raise ValueError("KNOWN_LIBRARIES must be a JSON mapping of prefix -> info") from e
        if not isinstance(v, dict):
            raise TypeError("KNOWN_LIBRARIES must be a mapping")
        return v

    def registry(self) -> LibraryRegistry:
        base = default_registry()
        if not self.known_libraries:
            return base
        return base.merged(LibraryRegistry.from_mapping(self.known_libraries))


class LimitsConfig(BaseModel):
    max_files: int = Field(100, ge=1)
    max_file_size: int = Field(500 * 1024, ge=1)
    max_total_size: int = Field(2 * 1024 * 1024, ge=1)


class CorsConfig(BaseModel):
    allow_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )
    allow_methods: List[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    allow_headers: List[str] = Field(default_factory=lambda: ["Content-Type", "X-Request-ID"])
    allow_credentials: bool = False

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def _coerce_list(cls, v):
        return _parse_list(v, default=[])


# --------------------------------- Settings ---------------------------------- #


class Settings(BaseSettings):
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_format: str = Field("json", description='"json" or "console"')

    compiler: CompilerConfig = Field(default_factory=CompilerConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", case_sensitive=False, extra="ignore")

    # --- Env bridges (.env keys -> nested models) ----------------------------
    COMPILER_URL: Optional[str] = Field(default=None, alias="COMPILER_URL")
    COMPILER_TIMEOUT_S: Optional[float] = Field(default=None, alias="COMPILER_TIMEOUT_S")
    COMPILER_MAX_RETRIES: Optional[int] = Field(default=None, alias="COMPILER_MAX_RETRIES")
    COMPILER_BACKOFF_S: Optional[float] = Field(default=None, alias="COMPILER_BACKOFF_S")

    ROOT_ESCAPE: Optional[str] = Field(default=None, alias="ROOT_ESCAPE")
    SOURCE_SUFFIXES: Optional[str | List[str]] = Field(default=None, alias="SOURCE_SUFFIXES")
    KNOWN_LIBRARIES: Optional[str | Dict[str, Any]] = Field(default=None, alias="KNOWN_LIBRARIES")

    MAX_FILES: Optional[int] = Field(default=None, alias="MAX_FILES")
    MAX_FILE_SIZE: Optional[int] = Field(default=None, alias="MAX_FILE_SIZE")
    MAX_TOTAL_SIZE: Optional[int] = Field(default=None, alias="MAX_TOTAL_SIZE")

    CORS_ALLOW_ORIGINS: Optional[str | List[str]] = Field(default=None, alias="CORS_ALLOW_ORIGINS")

    def model_post_init(self, __context: Any) -> None:
        c = self.compiler
        self.compiler = CompilerConfig(
            url=self.COMPILER_URL or c.url,
            timeout_s=c.timeout_s if self.COMPILER_TIMEOUT_S is None else self.COMPILER_TIMEOUT_S,
            max_retries=c.max_retries if self.COMPILER_MAX_RETRIES is None else self.COMPILER_MAX_RETRIES,
            backoff_s=c.backoff_s if self.COMPILER_BACKOFF_S is None else self.COMPILER_BACKOFF_S,
        )

        e = self.engine
        self.engine = EngineConfig(
            root_escape=(self.ROOT_ESCAPE or e.root_escape).lower(),
            source_suffixes=e.source_suffixes if self.SOURCE_SUFFIXES is None else self.SOURCE_SUFFIXES,
            known_libraries=e.known_libraries if self.KNOWN_LIBRARIES is None else self.KNOWN_LIBRARIES,
        )

        lim = self.limits
        self.limits = LimitsConfig(
            max_files=lim.max_files if self.MAX_FILES is None else self.MAX_FILES,
            max_file_size=lim.max_file_size if self.MAX_FILE_SIZE is None else self.MAX_FILE_SIZE,
            max_total_size=lim.max_total_size if self.MAX_TOTAL_SIZE is None else self.MAX_TOTAL_SIZE,
        )

        if self.CORS_ALLOW_ORIGINS is not None:
            self.cors.allow_origins = _parse_list(self.CORS_ALLOW_ORIGINS, default=self.cors.allow_origins)

    def registry(self) -> LibraryRegistry:
        return self.engine.registry()


# ------------------------------- Accessor API -------------------------------- #


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


__all__ = [
    "CompilerConfig",
    "CorsConfig",
    "EngineConfig",
    "LimitsConfig",
    "Settings",
    "get_settings",
]
