from decimal import Decimal, ROUND_HALF_UP
from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Commission Distribution Engine"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "postgresql://commission_user:commission_pass@db:5432/commission_db"

    # Redis (Celery broker + result backend)
    REDIS_URL: str = "redis://redis:6379/0"

    # Amounts are rounded half-up to this many decimal places (2 = cents/paise).
    # Amount columns are Numeric(12, 2), so at most 2.
    CURRENCY_MINOR_UNITS: int = 2

    # Employee share used when a tenant has no tenant_commission_settings row.
    DEFAULT_EMPLOYEE_SHARE_PERCENTAGE: Optional[Decimal] = Decimal("60")

    # Reject parties that have neither override, tier nor default share
    COMMISSION_STRICT_PARTY_CONFIG: bool = False

    @field_validator("CURRENCY_MINOR_UNITS")
    @classmethod
    def check_minor_units(cls, v: int) -> int:
        if v < 0 or v > 2:
            raise ValueError("CURRENCY_MINOR_UNITS must be between 0 and 2")
        return v

    @field_validator("DEFAULT_EMPLOYEE_SHARE_PERCENTAGE")
    @classmethod
    def check_employee_share(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is None:
            return v
        if v < 0 or v > 100:
            raise ValueError("DEFAULT_EMPLOYEE_SHARE_PERCENTAGE must be between 0 and 100")
        return v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
