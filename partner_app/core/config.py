from typing import List, Optional, Union
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    BACKEND_CORS_ORIGINS: Union[List[str], str] = []
    LOG_LEVEL: str = "INFO"

    # Database
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///partner_app.db"
    STORE_FETCH_RETRIES: int = 3
    STORE_RETRY_BACKOFF_SECONDS: float = 0.2

    # Mail (EMAIL_USER / EMAIL_PASS are the names used by older deployments)
    MAIL_USERNAME: str = Field(default="", validation_alias=AliasChoices("MAIL_USERNAME", "EMAIL_USER"))
    MAIL_PASSWORD: str = Field(default="", validation_alias=AliasChoices("MAIL_PASSWORD", "EMAIL_PASS"))
    MAIL_FROM: Optional[str] = None
    MAIL_FROM_NAME: str = "Partner App"
    MAIL_SERVER: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_STARTTLS: bool = True
    MAIL_SSL_TLS: bool = False
    MAIL_SUPPRESS_SEND: bool = False

    # OTP
    OTP_LENGTH: int = 6
    OTP_TTL_SECONDS: int = 600
    VERIFICATION_TOKEN_EXPIRE_MINUTES: int = 30

    # Rate limits
    OTP_SEND_MAX_REQUESTS: int = 5
    OTP_SEND_WINDOW_SECONDS: int = 600
    VERIFY_MAX_ATTEMPTS: int = 5
    VERIFY_WINDOW_SECONDS: int = 600
    LOGIN_MAX_ATTEMPTS: int = 10
    LOGIN_WINDOW_SECONDS: int = 300

    # Chat
    CHAT_HISTORY_LIMIT: int = 50


    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    @property
    def mail_sender(self) -> str:
        return self.MAIL_FROM or self.MAIL_USERNAME or "noreply@example.com"

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, env_ignore_empty=True, extra="ignore"
    )

settings = Settings()
