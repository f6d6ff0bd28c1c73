from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "Content Paywall API"
    API_V1_STR: str = "/api/v1"
    APP_URL: str = "http://localhost:3000"
    ADMIN_EMAIL: str = "admin@example.com"
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"
    RATE_LIMIT_PER_MINUTE: int = 100 # 0 disables
    LOGIN_RATE_LIMIT_PER_MINUTE: int = 30

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "content_paywall"
    DATABASE_URL: Optional[str] = None

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Razorpay (server side only)
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    PAYMENT_CURRENCY: str = "INR"

    # SMTP
    SMTP_HOST: str = "smtp-relay.brevo.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASS: str = ""
    MAIL_FROM: Optional[str] = None

    # B2 Storage
    B2_APPLICATION_KEY_ID: str = ""
    B2_APPLICATION_KEY: str = ""
    B2_BUCKET_NAME: str = "content-paywall-media"
    B2_ENDPOINT: str = "https://f002.backblazeb2.com" # Default Friendly URL Endpoint
    B2_PUBLIC_URL: Optional[str] = None # Optional CDN override (e.g. Cloudflare)
    LOCAL_UPLOAD_DIR: str = "static/uploads"

    # Uploads
    UPLOAD_FOLDER: str = "Blog-data"
    UPLOAD_MAX_SIZE: int = 5 * 1024 * 1024

    @property
    def razorpay_configured(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_USER and self.SMTP_HOST)

settings = Settings()
