from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    PGHOST: Optional[str] = None
    PGDATABASE: str = "foodcart"
    PGUSER: str = "postgres"
    PGPASSWORD: str = ""
    PGSSLMODE: str = "require"
    DB_STATEMENT_TIMEOUT_MS: int = 5000
    DB_CONNECT_TIMEOUT: int = 5
    DB_POOL_SIZE: int = 10

    # Admission control
    ADMISSION_MAX_ATTEMPTS: int = 5
    READ_RETRY_ATTEMPTS: int = 3
    RETRY_BACKOFF_SECONDS: float = 0.1
    CURRENCY: str = "EUR"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "logs/errors.log"

    # Application
    PROJECT_NAME: str = "Food Cart Booking API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.PGHOST:
            return f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}/{self.PGDATABASE}?sslmode={self.PGSSLMODE}"
        return "sqlite:///./foodcart.db"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
