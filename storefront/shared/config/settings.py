# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import sys
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_SQLITE_DEFAULT = "sqlite:///storefront.db"


class DatabaseConfig(BaseModel):
    url: str = Field(_SQLITE_DEFAULT, alias="DATABASE_URL")
    pool_size: int = Field(10, ge=1, alias="DATABASE_POOL_SIZE")
    max_overflow: int = Field(5, ge=0, alias="DATABASE_MAX_OVERFLOW")
    pool_timeout: float = Field(30.0, ge=0.1, alias="DATABASE_POOL_TIMEOUT")

    model_config = ConfigDict(validate_by_name=True)


class ResilienceConfig(BaseModel):
    default_timeout: float = Field(5.0, ge=0.1, alias="RESILIENCE_TIMEOUT")
    max_retries: int = Field(2, ge=0, alias="RESILIENCE_RETRIES")
    backoff_base: float = Field(0.2, ge=0.01, alias="RESILIENCE_BACKOFF_BASE")
    backoff_cap: float = Field(2.0, ge=0.01, alias="RESILIENCE_BACKOFF_CAP")
    circuit_fail_threshold: int = Field(5, ge=1, alias="RESILIENCE_CIRCUIT_THRESHOLD")
    circuit_reset_timeout: float = Field(30.0, ge=1.0, alias="RESILIENCE_CIRCUIT_RESET")

    model_config = ConfigDict(validate_by_name=True)


class GatewayConfig(BaseModel):
    catalog_url: str = Field("http://catalog.local", alias="CATALOG_SERVICE_URL")
    identity_url: str = Field("http://identity.local", alias="IDENTITY_SERVICE_URL")
    entitlement_url: str = Field("http://library.local", alias="ENTITLEMENT_SERVICE_URL")
    payment_url: str = Field("http://payments.local", alias="PAYMENT_SERVICE_URL")
    notification_url: str = Field("http://notify.local", alias="NOTIFICATION_SERVICE_URL")
    download_base_url: str = Field(
        "https://store.local/download", alias="DOWNLOAD_BASE_URL"
    )
    capture_timeout: float = Field(10.0, ge=0.1, alias="PAYMENT_CAPTURE_TIMEOUT")
    notification_timeout: float = Field(3.0, ge=0.1, alias="NOTIFICATION_TIMEOUT")

    model_config = ConfigDict(validate_by_name=True)


class WorkflowConfig(BaseModel):
    gift_ttl_days: int = Field(30, ge=1, alias="GIFT_TTL_DAYS")
    gift_message_max: int = Field(500, ge=1, alias="GIFT_MESSAGE_MAX")
    sweep_interval_seconds: float = Field(300.0, ge=1.0, alias="SWEEP_INTERVAL_SECONDS")
    sweep_batch_size: int = Field(500, ge=1, alias="SWEEP_BATCH_SIZE")

    model_config = ConfigDict(validate_by_name=True)


class ObservabilityConfig(BaseModel):
    metrics_enabled: bool = Field(True, alias="METRICS_ENABLED")
    service_name: str = Field("storefront-core", alias="SERVICE_NAME")
    metrics_port: int = Field(0, ge=0, le=65535, alias="METRICS_PORT")

    model_config = ConfigDict(validate_by_name=True)

    @field_validator("metrics_enabled", mode="before")
    @classmethod
    def _parse_bool(cls, value: str | bool) -> bool:
        if isinstance(value, str):
            return value.lower() in ("1", "true", "yes")
        return bool(value)


def _database_config_factory() -> DatabaseConfig:
    return DatabaseConfig()  # type: ignore[call-arg]


def _resilience_config_factory() -> ResilienceConfig:
    return ResilienceConfig()  # type: ignore[call-arg]


def _gateway_config_factory() -> GatewayConfig:
    return GatewayConfig()  # type: ignore[call-arg]


def _workflow_config_factory() -> WorkflowConfig:
    return WorkflowConfig()  # type: ignore[call-arg]


def _observability_config_factory() -> ObservabilityConfig:
    return ObservabilityConfig()  # type: ignore[call-arg]


class AppConfig(BaseSettings):
    app_env: str = Field("development", alias="APP_ENV")
    debug_logging: bool = Field(False, alias="DEBUG_LOGGING")

    database: DatabaseConfig = Field(default_factory=_database_config_factory)
    resilience: ResilienceConfig = Field(default_factory=_resilience_config_factory)
    gateways: GatewayConfig = Field(default_factory=_gateway_config_factory)
    workflow: WorkflowConfig = Field(default_factory=_workflow_config_factory)
    observability: ObservabilityConfig = Field(default_factory=_observability_config_factory)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
    )

    @field_validator("debug_logging", mode="before")
    @classmethod
    def _parse_debug_logging(cls, value: str | bool) -> bool:
        if isinstance(value, str):
            return value.lower() in ("1", "true", "yes")
        return bool(value)

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "AppConfig":
        if not self.is_production():
            return self

        if self.database.url == _SQLITE_DEFAULT:
            print(
                "\n❌ CRITICAL CONFIG ERROR: default SQLite DATABASE_URL in production!\n"
                "   Gift and pre-order state needs a real transactional store.\n"
                "   Set DATABASE_URL to the production database.\n",
                file=sys.stderr,
            )
            sys.exit(1)

        if self.gateways.capture_timeout > 30:
            print(
                "\n⚠️  PAYMENT_CAPTURE_TIMEOUT above 30s keeps requests open for too long\n",
                file=sys.stderr,
            )

        return self

    def is_production(self) -> bool:
        return self.app_env.lower() in ("production", "prod")


@lru_cache(maxsize=1)
def load_config() -> AppConfig:
    return AppConfig()


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "GatewayConfig",
    "ObservabilityConfig",
    "ResilienceConfig",
    "WorkflowConfig",
    "load_config",
]
