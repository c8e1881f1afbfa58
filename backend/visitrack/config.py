from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = "sqlite:///./visitrack.db"

    # Security
    SECRET_KEY: str = "visitrack-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours
    API_SECRET_TOKEN: str = ""  # empty disables ApiKey auth

    # Rate Limiting
    LOGIN_RATE_LIMIT: str = "5/15minutes"

    # HTTP
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"
    REQUEST_DEBUG: bool = False

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Location capture
    IP_LOOKUP_URL: str = "https://api.ipify.org"
    REVERSE_GEOCODE_URL: str = "https://nominatim.openstreetmap.org/reverse"
    LOOKUP_TIMEOUT_SECONDS: float = 5.0
    GEOLOCATION_TIMEOUT_SECONDS: float = 10.0

    # Active users
    ACTIVE_USER_TTL_MINUTES: int = 15

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    class Config:
        env_file = ".env"


settings = Settings()
