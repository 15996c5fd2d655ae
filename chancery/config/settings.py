"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Storage backends: "mongo" for deployments, "memory" for local runs and tests
    store_backend: str = "mongo"
    identity_backend: str = "firebase"

    # MongoDB (transactions require a replica set, even a single-node one)
    mongo_uri: str = "mongodb://localhost:27017/?replicaSet=rs0"
    mongo_db: str = "chancery_dev"

    # Identity provider (Firebase Identity Toolkit admin API)
    firebase_project_id: str = ""
    firebase_api_base: str = "https://identitytoolkit.googleapis.com/v1"
    identity_admin_token: str = ""
    identity_timeout_seconds: float = 10.0

    # Organisation
    dioceses: str = "tagbilaran,talibon"
    system_admin_role: str = "system_admin"

    # Workflow policy
    min_password_length: int = 8
    min_deactivation_reason_length: int = 10

    # Audit retry
    audit_retry_interval_seconds: int = 30
    audit_max_retries: int = 5

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def dioceses_list(self) -> List[str]:
        """Parse configured dioceses to a normalised list"""
        return [d.strip().lower() for d in self.dioceses.split(",") if d.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
