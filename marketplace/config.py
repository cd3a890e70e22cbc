from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class IdentityPool(str, Enum):
    """Identity provider tenants. Admins live in their own pool."""
    ADMIN = "admin"
    GENERAL = "general"


@dataclass(frozen=True)
class PoolConfig:
    pool_id: str
    client_id: str
    client_secret: str


class Settings(BaseSettings):
    # App config
    app_name: str = "Marketplace Auth Service"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "default"
    logging_config_path: Optional[str] = None
    cors_origins: list[str] = ["*"]

    # Database - full URL wins over the individual parts
    database_url: Optional[str] = None
    db_service_user: str = "marketplace_service"
    db_service_password: str = ""
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    db_name: str = "marketplace"
    db_pool_min_size: int = 5
    db_pool_max_size: int = 20
    db_create_tables: bool = False

    # AWS
    aws_region: str = "us-east-1"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None

    # Cognito general (vendor/customer) pool
    aws_cognito_user_pool_id: str = ""
    aws_cognito_client_id: str = ""
    aws_cognito_client_secret: str = ""

    # Cognito admin pool
    aws_cognito_admin_user_pool_id: str = ""
    aws_cognito_admin_client_id: str = ""
    aws_cognito_admin_client_secret: str = ""

    # S3 uploads
    aws_s3_bucket_name: str = ""
    aws_s3_public_url: Optional[str] = None
    max_upload_size_mb: int = 5

    # Audit value for rows created by the service itself
    system_user_id: int = 1

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def sqlalchemy_url(self) -> str:
        """Build the async SQLAlchemy connection string"""
        if self.database_url:
            return self.database_url
        if not self.db_service_password:
            raise ValueError(
                "DB_SERVICE_PASSWORD must be set when DATABASE_URL is not provided."
            )
        return (
            f"postgresql+asyncpg://{self.db_service_user}:{self.db_service_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.db_name}"
        )

    def identity_pools(self) -> Dict[IdentityPool, PoolConfig]:
        """Lookup table from tenant to its pool/client identifiers"""
        return {
            IdentityPool.ADMIN: PoolConfig(
                pool_id=self.aws_cognito_admin_user_pool_id,
                client_id=self.aws_cognito_admin_client_id,
                client_secret=self.aws_cognito_admin_client_secret,
            ),
            IdentityPool.GENERAL: PoolConfig(
                pool_id=self.aws_cognito_user_pool_id,
                client_id=self.aws_cognito_client_id,
                client_secret=self.aws_cognito_client_secret,
            ),
        }


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, built once at startup"""
    return Settings()
