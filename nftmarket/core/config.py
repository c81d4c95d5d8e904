from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "NFT Marketplace Engine"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── JWT / AUTH ───────────
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_minutes: int = 1440  # 24 hours

    # ─────────── MARKET ───────────
    # one license term unit, in milliseconds (30 days)
    license_term_unit_ms: int = 30 * 24 * 60 * 60 * 1000
    # minted to each initial holder of a freshly deployed funds token
    mock_funds_initial_balance: int = 1000 * 10**18


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
