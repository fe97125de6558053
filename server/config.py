"""
Centralized configuration for the side-game server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.side_game_defaults.nassau_base_value)
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv

# .env at the repository root; real environment variables take precedence
_ENV_FILE = Path(__file__).parent.parent / ".env"
if _ENV_FILE.exists():
    load_dotenv(_ENV_FILE)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_env_decimal(key: str, default: str = "0") -> Decimal:
    """Get monetary environment variable as a Decimal."""
    try:
        return Decimal(os.environ.get(key, default))
    except InvalidOperation:
        return Decimal(default)


@dataclass
class SideGameDefaults:
    """Default stakes used when a game is created without explicit values."""
    skins_per_hole: Decimal = Decimal("5")
    skins_carry_over: bool = True
    nassau_base_value: Decimal = Decimal("10")
    auto_press_enabled: bool = True
    auto_press_threshold: int = 2
    max_presses_per_nine: int = 3
    wolf_buy_in: Decimal = Decimal("1")
    pig_available: bool = True


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Persistence
    POSTGRES_URL: str = ""
    REDIS_URL: str = ""

    # Side game defaults
    side_game_defaults: SideGameDefaults = field(default_factory=SideGameDefaults)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 8000),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            POSTGRES_URL=get_env("POSTGRES_URL", ""),
            REDIS_URL=get_env("REDIS_URL", ""),
            side_game_defaults=SideGameDefaults(
                skins_per_hole=get_env_decimal("DEFAULT_SKINS_PER_HOLE", "5"),
                skins_carry_over=get_env_bool("DEFAULT_SKINS_CARRY_OVER", True),
                nassau_base_value=get_env_decimal("DEFAULT_NASSAU_BASE_VALUE", "10"),
                auto_press_enabled=get_env_bool("DEFAULT_AUTO_PRESS_ENABLED", True),
                auto_press_threshold=get_env_int("DEFAULT_AUTO_PRESS_THRESHOLD", 2),
                max_presses_per_nine=get_env_int("DEFAULT_MAX_PRESSES_PER_NINE", 3),
                wolf_buy_in=get_env_decimal("DEFAULT_WOLF_BUY_IN", "1"),
                pig_available=get_env_bool("DEFAULT_PIG_AVAILABLE", True),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()

