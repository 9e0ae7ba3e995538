from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


RESTOCK_ON_APPROVAL = "on_approval"
RESTOCK_ON_PROCESSING = "on_processing"
RESTOCK_MANUAL = "manual"
RESTOCK_POLICIES = (RESTOCK_ON_APPROVAL, RESTOCK_ON_PROCESSING, RESTOCK_MANUAL)


@dataclass(frozen=True)
class TaxConfig:
    rates: tuple[int, ...] = (0, 7, 10, 20)
    default_rate: int = 20


@dataclass(frozen=True)
class SideEffectConfig:
    timeout_seconds: float = 10.0
    customer_visible_notes: bool = True


@dataclass(frozen=True)
class ReturnConfig:
    restock_policy: str = RESTOCK_ON_APPROVAL
    refunded_order_status: str = "refunded"
    update_order_status: bool = True
    condition_factors: tuple[tuple[str, Decimal], ...] = (
        ("new", Decimal("1.0")),
        ("used", Decimal("0.8")),
        ("damaged", Decimal("0.5")),
    )


@dataclass(frozen=True)
class DeliveryConfig:
    completed_order_status: str = "completed"
    in_transit_order_status: Optional[str] = None
    update_order_status: bool = True


@dataclass(frozen=True)
class NumberingConfig:
    prefixes: tuple[tuple[str, str], ...] = (
        ("purchase_order", "BC"),
        ("delivery_note", "BL"),
        ("return_note", "BR"),
        ("receipt", "REC"),
    )
    start_number: int = 1

    def prefix_for(self, document_type: str) -> str:
        return dict(self.prefixes).get(document_type, "DOC")


class Settings(BaseSettings):
    APP_NAME: str = "Backoffice"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PORT: int = 8000

    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/backoffice"
    DATABASE_SYNC_URL: str = ""
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_RECYCLE: int = 300
    DB_SSL: bool = False

    WOOCOMMERCE_URL: str = ""
    WOOCOMMERCE_CONSUMER_KEY: str = ""
    WOOCOMMERCE_CONSUMER_SECRET: str = ""
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = 10.0
    UPDATE_ORDER_STATUS: bool = True
    NOTIFY_CUSTOMERS: bool = True

    TAX_RATES: str = "0,7,10,20"
    DEFAULT_TAX_RATE: int = 20

    RETURN_RESTOCK_POLICY: str = RESTOCK_ON_APPROVAL
    RETURN_REFUNDED_ORDER_STATUS: str = "refunded"
    DELIVERY_COMPLETED_ORDER_STATUS: str = "completed"
    DELIVERY_IN_TRANSIT_ORDER_STATUS: Optional[str] = None

    NUMBER_PREFIX_PURCHASE_ORDER: str = "BC"
    NUMBER_PREFIX_DELIVERY_NOTE: str = "BL"
    NUMBER_PREFIX_RETURN_NOTE: str = "BR"
    NUMBER_PREFIX_RECEIPT: str = "REC"
    NUMBER_START: int = 1

    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def tax_rates_list(self) -> tuple[int, ...]:
        return tuple(sorted(int(r.strip()) for r in self.TAX_RATES.split(",") if r.strip()))

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def tax_config(self) -> TaxConfig:
        return TaxConfig(rates=self.tax_rates_list, default_rate=self.DEFAULT_TAX_RATE)

    def side_effect_config(self) -> SideEffectConfig:
        return SideEffectConfig(
            timeout_seconds=self.EXTERNAL_CALL_TIMEOUT_SECONDS,
            customer_visible_notes=self.NOTIFY_CUSTOMERS,
        )

    def return_config(self) -> ReturnConfig:
        if self.RETURN_RESTOCK_POLICY not in RESTOCK_POLICIES:
            raise ValueError(
                f"RETURN_RESTOCK_POLICY must be one of {RESTOCK_POLICIES}, "
                f"got '{self.RETURN_RESTOCK_POLICY}'"
            )
        return ReturnConfig(
            restock_policy=self.RETURN_RESTOCK_POLICY,
            refunded_order_status=self.RETURN_REFUNDED_ORDER_STATUS,
            update_order_status=self.UPDATE_ORDER_STATUS,
        )

    def delivery_config(self) -> DeliveryConfig:
        return DeliveryConfig(
            completed_order_status=self.DELIVERY_COMPLETED_ORDER_STATUS,
            in_transit_order_status=self.DELIVERY_IN_TRANSIT_ORDER_STATUS,
            update_order_status=self.UPDATE_ORDER_STATUS,
        )

    def numbering_config(self) -> NumberingConfig:
        return NumberingConfig(
            prefixes=(
                ("purchase_order", self.NUMBER_PREFIX_PURCHASE_ORDER),
                ("delivery_note", self.NUMBER_PREFIX_DELIVERY_NOTE),
                ("return_note", self.NUMBER_PREFIX_RETURN_NOTE),
                ("receipt", self.NUMBER_PREFIX_RECEIPT),
            ),
            start_number=self.NUMBER_START,
        )

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
