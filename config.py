from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Optional

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./library.db"
    SECRET_KEY: str = "change_this_secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 30
    PORT: int = 5000
    FRONTEND_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"
    LOCALE: Literal["en", "th"] = "en"

    # Lending rules
    LOAN_PERIOD_DAYS: int = 7
    RETURN_POLICY: Literal["any", "owner", "owner_or_admin"] = "any"
    ALLOW_ADMIN_REGISTRATION: bool = True

    # Book list cache (optional)
    REDIS_URL: Optional[str] = None
    CACHE_TTL_SECONDS: int = 300

    @property
    def allow_origins(self) -> List[str]:
        return [origin.strip() for origin in self.FRONTEND_ORIGINS.split(",") if origin.strip()]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
