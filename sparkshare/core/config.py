import json

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = Field(default="local", alias="ENV")
    database_url: str = Field(alias="DATABASE_URL")

    # ─────────────────────────────────────────────
    # Identity provider tokens
    # ─────────────────────────────────────────────
    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60 * 24 * 30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    cors_origins: str = Field(default="http://localhost:8081", alias="CORS_ORIGINS")

    # ─────────────────────────────────────────────
    # Store
    # ─────────────────────────────────────────────
    db_timeout_seconds: float = Field(default=10.0, alias="DB_TIMEOUT_SECONDS")

    # ─────────────────────────────────────────────
    # Sharing
    # ─────────────────────────────────────────────
    share_require_friendship: bool = Field(default=True, alias="SHARE_REQUIRE_FRIENDSHIP")
    spark_modules: str = Field(default="", alias="SPARK_MODULES")

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_database_url(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        cleaned = value.strip()
        if cleaned.startswith("postgres://"):
            cleaned = f"postgresql://{cleaned[len('postgres://'):]}"
        if cleaned.startswith("postgresql://") and not cleaned.startswith("postgresql+"):
            cleaned = cleaned.replace("postgresql://", "postgresql+asyncpg://", 1)
        if cleaned.startswith("sqlite://"):
            cleaned = cleaned.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return cleaned

    @model_validator(mode="after")
    def validate_timeouts(self) -> "Settings":
        if self.db_timeout_seconds <= 0:
            raise ValueError("DB_TIMEOUT_SECONDS must be positive")
        return self

    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def cors_origin_list(self) -> list[str]:
        return _split_list(self.cors_origins, strip_trailing_slash=True)

    def spark_module_list(self) -> list[str]:
        return _split_list(self.spark_modules)


def _split_list(raw_value: str | None, *, strip_trailing_slash: bool = False) -> list[str]:
    raw = (raw_value or "").strip()
    if not raw:
        return []

    values: list[str]
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            values = [str(v) for v in parsed if isinstance(v, str)]
        else:
            values = [raw]
    else:
        values = raw.split(",")

    normalized: list[str] = []
    seen: set[str] = set()
    for value in values:
        cleaned = value.strip().strip("\"'")
        if not cleaned:
            continue
        # CORS origins are scheme + host (+ optional port) with no path slash.
        if strip_trailing_slash and cleaned != "*" and cleaned.endswith("/"):
            cleaned = cleaned.rstrip("/")
        if cleaned in seen:
            continue
        seen.add(cleaned)
        normalized.append(cleaned)

    return normalized

settings = Settings()
