from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Armory"
    debug: bool = False

    database_url: str = "sqlite+aiosqlite:///./armory.db"

    # Modules whose WeaponKind subclasses may be resolved from a stored
    # "module:QualName" key. Kinds defined elsewhere are rejected as unknown.
    kind_modules: list[str] = ["armory.models.weapon"]


settings = Settings()


# =============================================================================
# ECONOMIC CONSTANTS (NOT configurable at runtime)
# =============================================================================

# Trade-in credit: floor(price * 3 / 4) of the traded-in kind's current price
TRADE_IN_CREDIT_NUMERATOR = 3
TRADE_IN_CREDIT_DENOMINATOR = 4

# Sell-back payout: floor(price / 2) of the kind's current price
SELL_BACK_DIVISOR = 2

# Label of the avatar's single equipment attachment
WEAPON_SLOT_LABEL = "weapon"

MAX_AVATAR_NAME_LENGTH = 64

# Largest amount of gold any balance, price or supply may reach (signed 64-bit)
MAX_AMOUNT = 2**63 - 1
