"""Application settings.

All values come from the environment (or a local ``.env`` file) through
Pydantic Settings. Nothing here is read again after startup: the container
factory copies what each component needs into its constructor.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from basemeter.core.config.enums import Environment
from basemeter.core.tenants import parse_tenant_list

DEFAULT_HOURLY_UNIT_PRICE = 6.5


class Settings(BaseSettings):
    """Process-wide configuration.

    Comma-separated tenant lists (``PAID_BASE_IDS``, ``ADMIN_BASE_IDS``) are kept
    as raw strings and parsed through properties so operators can paste them
    without JSON quoting. Structured values (``DEFAULT_TIERED_PRICES``,
    ``SEED_REDEEM_CODES``) are JSON.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"

    # Admission
    TRIAL_LIMIT: int = Field(2, ge=0, description="Free uses granted per tenant per process")
    SUBSCRIPTION_BYPASS: bool = Field(
        False, description="Let every tenant through; ignored in production"
    )
    PAID_BASE_IDS: str = Field("", description="Comma-separated tenants that are always paid")
    ADMIN_BASE_IDS: str = Field("", description="Comma-separated admin tenants (seed list)")
    ADMIN_TOKEN: Optional[str] = Field(None, description="Token required for admin operations")

    # Persistence
    SUBSCRIPTION_STORE_PATH: Optional[str] = Field(
        None, description="JSON snapshot file; persistence is disabled when unset"
    )

    # Pricing
    DEFAULT_MODEL_UNIT_PRICE: float = Field(DEFAULT_HOURLY_UNIT_PRICE / 60, ge=0)
    DEFAULT_MODEL_UNIT_LABEL: str = "minute"
    DEFAULT_TIERED_PRICES: List[Dict[str, Any]] = Field(default_factory=list)

    # Orders
    BILLING_PAYMENT_URL: str = Field(
        "", description="Payment URL template with {orderId} {baseId} {planId} {price}"
    )

    # Redeem codes seeded at startup (plaintext, hashed before use)
    SEED_REDEEM_CODES: List[str] = Field(default_factory=list)
    SEED_REDEEM_CODE_DAYS: int = Field(30, gt=0)

    # Charge bridge
    PENDING_TASK_TTL_SECONDS: float = Field(24 * 60 * 60, gt=0)

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def allow_bypass(self) -> bool:
        """Bypass is a development convenience and never applies in production."""
        return self.SUBSCRIPTION_BYPASS and self.ENVIRONMENT != Environment.PRD

    @property
    def paid_base_ids(self) -> frozenset[str]:
        """Tenants on the static paid allow-list."""
        return frozenset(parse_tenant_list(self.PAID_BASE_IDS))

    @property
    def admin_base_ids(self) -> List[str]:
        """Admin tenants from the environment seed list, in configured order."""
        return parse_tenant_list(self.ADMIN_BASE_IDS)

    @property
    def seed_redeem_code_duration_ms(self) -> int:
        """Paid period granted by each seeded redeem code."""
        return self.SEED_REDEEM_CODE_DAYS * 24 * 60 * 60 * 1000
