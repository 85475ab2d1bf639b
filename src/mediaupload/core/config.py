"""Configuration management for MediaUpload Engine."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    ENV: str = "local"
    SERVICE_NAME: str = "mediaupload-engine"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Storage Configuration
    STORAGE_BACKEND: str = "local"  # "supabase", "gcs" or "local"
    MEDIA_BUCKET: str = "media"
    STORAGE_REQUEST_TIMEOUT: int = 60  # seconds per storage call

    # S3-compatible signing (presigned PUT URLs)
    S3_ACCESS_KEY_ID: str = ""
    S3_SECRET_ACCESS_KEY: str = ""
    S3_ENDPOINT: str = ""  # e.g. https://<project>.storage.supabase.co
    S3_REGION: str = "us-east-1"  # Supabase gateway only accepts us-east-1
    S3_GATEWAY_PREFIX: str = "/storage/v1/s3"
    PRESIGNED_URL_EXPIRES_SECONDS: int = 3600

    # Supabase Storage REST API
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    # GCP Configuration
    GCP_PROJECT_ID: str = ""

    # Local filesystem backend
    LOCAL_STORAGE_PATH: str = "./data/storage"
    LOCAL_PUBLIC_BASE_URL: str = "http://localhost:8080/files"

    # Chunk merge
    MAX_TOTAL_CHUNKS: int = 10_000
    MERGE_DOWNLOAD_CONCURRENCY: int = 4

    # HTTP
    CORS_ALLOW_ORIGIN: str = "*"

    @property
    def signing_configured(self) -> bool:
        """True when every value needed to presign URLs is present."""
        return bool(self.S3_ACCESS_KEY_ID and self.S3_SECRET_ACCESS_KEY and self.S3_ENDPOINT)

    @property
    def gateway_prefix(self) -> str:
        """S3_GATEWAY_PREFIX with exactly one leading slash and no trailing slash."""
        prefix = self.S3_GATEWAY_PREFIX.strip().strip("/")
        return f"/{prefix}" if prefix else ""

    @property
    def max_total_chunks(self) -> int:
        return max(1, self.MAX_TOTAL_CHUNKS)


# Singleton settings instance
settings = Settings()
