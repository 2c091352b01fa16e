from typing import List, Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Lap CMS API"
    ENVIRONMENT: str = "development"
    DATABASE_URL: str = "sqlite:///./lapcms.db"
    LOG_LEVEL: str = "INFO"

    # Auth
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours
    AUTH_COOKIE_NAME: str = "auth_token"
    BCRYPT_ROUNDS: int = 12

    # Admin panel CORS (the SDK routes are gated per site instead)
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # S3-compatible object storage (MinIO in development)
    UPLOAD_URL: str = "http://localhost:9000"
    UPLOAD_KEY: str = "minioadmin"
    UPLOAD_SECRET: str = "minioadmin"
    UPLOAD_BUCKET: str = "lap-cms-uploads"
    UPLOAD_REGION: str = "us-east-1"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024  # 5MB
    STORAGE_INIT_ON_STARTUP: bool = True

    # SDK key that bypasses the database; ignored in production
    SDK_TEST_API_KEY: Optional[str] = "cmdozt34f0004p4aew6o2k8r1"

    RATE_LIMIT_ENABLED: bool = False

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def sdk_test_key(self) -> Optional[str]:
        if self.is_production:
            return None
        return self.SDK_TEST_API_KEY or None

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
