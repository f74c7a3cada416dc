from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Timekeeper"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Database
    DATABASE_URL: str = "postgresql://timekeeper_user:timekeeper_pass@db:5432/timekeeper_db"

    # Redis (celery broker for the reconciliation job)
    REDIS_URL: str = "redis://redis:6379/0"

    # Security - tokens are issued by the external identity provider
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # File Upload
    UPLOAD_DIR: str = "/app/uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    PREVIEW_ROWS: int = 5

    # Wall-clock zone of the biometric devices and of schedule times
    TIMEZONE: str = "UTC"

    # Employee matching for bulk imports: badge_id | user_id | name_dob
    EMPLOYEE_MATCH_STRATEGY: str = "user_id"
    AUTO_CREATE_EMPLOYEES: bool = True
    EMPLOYEE_BATCH_SIZE: int = 50
    ATTENDANCE_BATCH_SIZE: int = 500

    # Attendance rules
    REGULAR_HOURS_PER_DAY: float = 8.0
    LATE_GRACE_MINUTES: int = 5

    # Schedule reconciliation (celery beat)
    RECONCILE_INTERVAL_MINUTES: int = 15

    # Frontend URL for CORS
    FRONTEND_URL: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
