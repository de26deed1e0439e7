from pydantic_settings import BaseSettings
from pydantic import ConfigDict

class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", extra="ignore")

    ENV: str = "development"

    DATABASE_URL: str = "sqlite:///./auth.db"
    JWT_ACCESS_SECRET: str
    JWT_REFRESH_SECRET: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 14
    MFA_ISSUER: str = "Pramara PMS"
    SUPERUSER_ROLE: str = "Super Admin"
    PASSWORD_MIN_LENGTH: int = 8
    REVOKE_SESSIONS_ON_PASSWORD_CHANGE: bool = False
    BOOTSTRAP_ADMIN_EMAIL: str = "admin@pramara.local"
    BOOTSTRAP_ADMIN_PASSWORD: str = "ChangeMe@123"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]


settings = Settings()
