from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Attendance Reconciliation Engine"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "postgresql://attendance_user:attendance_pass@db:5432/attendance_db"
    STORE_TIMEOUT_SECONDS: int = 15  # statement timeout for record store calls

    # Attendance rate denominator (working days expected in a month)
    EXPECTED_WORKING_DAYS: int = 22

    # Time entries
    MAX_ENTRY_HOURS: int = 24
    # "skip" = malformed legacy clock strings never block a submission
    # "reject" = treat them as conflicting
    UNPARSABLE_TIME_POLICY: str = "skip"

    # Proof attachments (reference only, files live in the blob store)
    PROOF_ALLOWED_MIME_TYPES: List[str] = [
        "application/pdf",
        "image/jpeg",
        "image/jpg",
        "image/png",
    ]
    PROOF_MAX_SIZE: int = 5 * 1024 * 1024  # 5MB

    # Dashboard snapshot refresh
    DASHBOARD_STALE_SECONDS: int = 900  # 15 minutes
    DASHBOARD_REFRESH_ENABLED: bool = True

    # Frontend origin for CORS
    FRONTEND_URL: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
