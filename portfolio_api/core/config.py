from typing import List, Optional

from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUBMISSION_METHODS = ("appwrite", "firebase", "firestore", "mailto")


class Settings(BaseSettings):
    PROJECT_NAME: str = "Portfolio Contact API"
    VERSION: str = "1.0.0"

    # --- Environment & Debug ---
    ENVIRONMENT: str = "local"
    DEBUG: bool = False  # Default to False for security
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # "json" or "console"
    LOG_DIR: str = "logs"

    # --- Appwrite ---
    APPWRITE_ENDPOINT: str = "https://cloud.appwrite.io/v1"
    APPWRITE_PROJECT_ID: Optional[str] = None
    APPWRITE_API_KEY: Optional[SecretStr] = None
    APPWRITE_DATABASE_ID: str = "contact-form-db"
    APPWRITE_CONTACT_COLLECTION_ID: str = "contact-submissions"

    # --- Firebase ---
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_FILE: Optional[str] = None  # Service account JSON
    FIREBASE_REGION: str = "us-central1"
    FIREBASE_CALLABLE_NAME: str = "submitContactForm"
    FIRESTORE_COLLECTION: str = "contact_submissions"

    # --- Mailto / Notifications ---
    CONTACT_EMAIL: str = "contact@example.com"
    EMAIL_USER: Optional[str] = None
    EMAIL_PASSWORD: Optional[SecretStr] = None
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    NOTIFICATIONS_ENABLED: bool = True

    # --- Submission pipeline ---
    SUBMISSION_BACKEND: str = "mailto"
    SUBMISSION_MAX_RETRIES: int = 3
    SUBMISSION_BACKOFF_SECONDS: float = 1.0
    SUBMISSION_TIMEOUT_SECONDS: float = 10.0
    HONEYPOT_FIELD: str = "honeypot"
    SPAM_SCORE_THRESHOLD: int = 50

    # --- Rate Limiting / Proxy ---
    RATE_LIMIT_WINDOW_MS: int = 60 * 60 * 1000  # 1 hour
    RATE_LIMIT_MAX_REQUESTS: int = 10
    RATE_LIMIT_KEY_PREFIX: str = "rate_limit_"
    RATE_LIMIT_BACKEND: str = "memory"  # "memory" or "redis"
    REDIS_URL: str = "redis://localhost:6379/0"
    TRUSTED_PROXIES: List[str] = Field(
        default_factory=lambda: ["127.0.0.1", "10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16"],
        description="CIDR ranges of trusted reverse proxies for X-Forwarded-For",
    )

    # --- Admin ---
    ADMIN_API_KEY: Optional[SecretStr] = None

    # --- Celery ---
    CELERY_BROKER_URL: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Optional[str]) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("SUBMISSION_BACKEND", mode="after")
    @classmethod
    def validate_submission_backend(cls, v: str) -> str:
        method = v.strip().lower()
        if method not in SUBMISSION_METHODS:
            raise ValueError(
                f"SUBMISSION_BACKEND must be one of {', '.join(SUBMISSION_METHODS)}"
            )
        return method

    @field_validator("RATE_LIMIT_MAX_REQUESTS", "RATE_LIMIT_WINDOW_MS", mode="after")
    @classmethod
    def validate_positive(cls, v: int, info: ValidationInfo) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be a positive integer")
        return v

    @property
    def appwrite_configured(self) -> bool:
        return bool(self.APPWRITE_PROJECT_ID and self.APPWRITE_API_KEY)

    @property
    def email_configured(self) -> bool:
        return bool(self.EMAIL_USER and self.EMAIL_PASSWORD)

    @property
    def celery_broker_url(self) -> str:
        return (self.CELERY_BROKER_URL or "").strip() or self.REDIS_URL


settings = Settings()
