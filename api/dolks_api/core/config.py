from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "dolks-api"
    environment: str = "dev"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    supabase_service_role_key: str | None = None
    auth_timeout_seconds: float = 5.0
    storage_timeout_seconds: float = 30.0
    post_images_bucket: str = "post-images"
    job_documents_bucket: str = "job-documents"
    cors_allow_origins: list[str] = ["*"]
    cors_allow_headers: list[str] = ["authorization", "x-client-info", "apikey", "content-type"]
    otel_enabled: bool = True
    otel_service_name: str = "dolks-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="DOLKS_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
