"""Application configuration using Pydantic Settings."""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "SchoolERP"
    debug: bool = False
    log_level: str = "INFO"

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "schoolerp"

    # JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    jwt_refresh_token_expire_days: int = 30

    # Bootstrap platform operator (created at startup when missing)
    super_admin_email: str = ""
    super_admin_password: str = ""

    # Uploads: "local" writes under upload_dir and serves it at upload_url_prefix, "s3" uses boto3
    upload_backend: str = "local"
    upload_dir: str = "uploads"
    upload_url_prefix: str = "/uploads"
    max_upload_mb: int = 10

    # AWS S3
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "ap-south-1"
    s3_bucket_uploads: str = "schoolerp-uploads"

    # CORS (comma-separated origins, e.g. "https://erp.example.com,https://admin.example.com")
    cors_origins: str = "http://localhost:3000"

    @model_validator(mode="after")
    def _validate_production_secrets(self):
        if not self.debug:
            if self.jwt_secret_key in ("change-me-in-production", ""):
                raise ValueError(
                    "JWT_SECRET_KEY must be set to a strong secret when DEBUG is not enabled. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
        if self.upload_backend not in ("local", "s3"):
            raise ValueError("UPLOAD_BACKEND must be 'local' or 's3'")
        return self


settings = Settings()
