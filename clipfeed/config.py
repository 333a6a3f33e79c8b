"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database (MySQL-protocol compatible) ───────────────────────────────
    db_host: str = "mysql"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "clipfeed"
    # Full SQLAlchemy URL; overrides the host/port fields when set
    database_url_override: str = ""
    db_pool_size: int = 20
    db_max_overflow: int = 10

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+aiomysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # ── Redis (feed candidate cache) ───────────────────────────────────────
    redis_enabled: bool = True
    redis_host: str = "redis"
    redis_port: int = 6379
    candidate_cache_ttl: int = 30        # seconds; boosts change rarely

    # ── Feed sampling ──────────────────────────────────────────────────────
    feed_page_size: int = 20
    feed_weight_scale: int = 20          # pool slots per unit of boost
    feed_attempt_factor: int = 5         # draw attempts = limit * factor

    # ── Search ─────────────────────────────────────────────────────────────
    search_candidate_limit: int = 50     # caption matches scored per query

    # ── Promotion ──────────────────────────────────────────────────────────
    max_boost: float = 100.0
    boost_per_coin: float = 0.2          # 10 coins = +2.0 boost
    min_promotion_coins: int = 10
    max_promotion_coins: int = 500

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "clipfeed-api"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
