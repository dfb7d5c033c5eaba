from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")

    # Students below this rate (percent) are flagged for intervention review
    attendance_low_threshold: int = Field(75, alias="ATTENDANCE_LOW_THRESHOLD", ge=0, le=100)
    attendance_max_range_days: int = Field(366, alias="ATTENDANCE_MAX_RANGE_DAYS", ge=1)

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
