# inventario/config.py
from dataclasses import dataclass
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    DATABASE_URL: str = "sqlite:///./inventario.db"

    # bcrypt cost factor for password hashes
    BCRYPT_ROUNDS: int = 12

    FRONTEND_URL: Optional[str] = None

    # Create system roles, sample categories and the admin user on startup
    SEED_ON_STARTUP: bool = True
    ADMIN_PASSWORD: str = "admin123"

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Stock movement ledger rules
    MAX_MOVEMENT_QUANTITY: int = 100000
    MAX_STOCK: int = 1000000
    LOW_STOCK_FACTOR: float = 1.5
    MAX_PERIOD_DAYS: int = 365
    MOVEMENT_MAX_RETRIES: int = 5
    MOVEMENT_LOCK_TIMEOUT_SECONDS: int = 5

    class Config:
        env_file: ClassVar[str] = str(env_path)


@dataclass(frozen=True)
class MovementSettings:
    """Limits and thresholds handed to the movement engine at construction."""
    max_quantity: int = 100000
    max_stock: int = 1000000
    max_reason_length: int = 255
    low_stock_factor: float = 1.5
    max_period_days: int = 365
    max_retries: int = 5
    lock_timeout_seconds: int = 5

    @classmethod
    def from_settings(cls, s: "Settings") -> "MovementSettings":
        return cls(
            max_quantity=s.MAX_MOVEMENT_QUANTITY,
            max_stock=s.MAX_STOCK,
            low_stock_factor=s.LOW_STOCK_FACTOR,
            max_period_days=s.MAX_PERIOD_DAYS,
            max_retries=s.MOVEMENT_MAX_RETRIES,
            lock_timeout_seconds=s.MOVEMENT_LOCK_TIMEOUT_SECONDS,
        )


settings = Settings()


def get_movement_settings() -> MovementSettings:
    return MovementSettings.from_settings(settings)
