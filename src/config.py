from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./event_ticketing.db"

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    TICKET_TOKEN_EXPIRE_MINUTES: int = 60

    # Tickets
    QR_CODE_DIR: str = "private_qrs"
    QR_RETENTION_DAYS: int = 7
    QR_CLEANUP_INTERVAL_HOURS: int = 24
    TICKETS_SINGLE_USE: bool = True

    # Notifications
    NOTIFICATION_QUEUE_SIZE: int = 100
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    EMAIL_FROM: str = "Event Ticketing <no-reply@localhost>"
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # Application
    PROJECT_NAME: str = "Event Ticketing System"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def ticket_retrieval_url(self) -> str:
        return f"{self.PUBLIC_BASE_URL}{self.API_V1_STR}/bookings/qr"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
