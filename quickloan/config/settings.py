from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Pricing
    ANNUAL_INTEREST_RATE: float = 0.14  # 14% p.a., compounded annually
    TENOR_OPTIONS: List[int] = [6, 12, 24, 36, 60]
    RECOMMENDED_TENOR: int = 12

    # Simulated latencies (seconds)
    UPLOAD_DELAY_MIN_SECONDS: float = 0.4
    UPLOAD_DELAY_MAX_SECONDS: float = 1.0
    KYC_PROCESSING_SECONDS: float = 3.0
    COLLATERAL_UPLOAD_MIN_SECONDS: float = 0.6
    COLLATERAL_UPLOAD_MAX_SECONDS: float = 1.2

    # Application
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
