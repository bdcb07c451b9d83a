"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Collaborator credentials are optional here; the ones the service
    cannot run without are checked at startup by ``missing_core_credentials``.
    """

    # ========== Application ==========
    app_name: str = Field(default="shipwatch", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port", ge=1, le=65535)

    # ========== Board (monday.com) ==========
    monday_token: Optional[str] = Field(default=None, description="monday.com API token")
    monday_api_url: str = Field(
        default="https://api.monday.com/v2",
        description="monday.com GraphQL endpoint"
    )
    monday_timeout_seconds: float = Field(default=10.0, ge=0.1, le=60)

    # ========== Slack Integration ==========
    slack_bot_token: Optional[str] = Field(default=None, description="Slack bot token")
    slack_channel_id: Optional[str] = Field(
        default=None,
        description="Slack channel receiving shipment alerts"
    )
    slack_api_url: str = Field(default="https://slack.com/api/chat.postMessage")
    slack_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for Slack API calls",
        ge=0.1,
        le=30
    )

    # ========== LLM (model-assisted classification) ==========
    llm_provider: str = Field(default="zai", description="zai, openai or mock")
    zai_api_key: Optional[str] = Field(default=None, description="Z.AI API key for GLM")
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    llm_model: str = Field(default="glm-4.7", description="Model used for update analysis")
    llm_temperature: float = Field(default=0.1, ge=0.0, le=1.0)
    llm_max_tokens: int = Field(default=400, ge=1, le=8000)

    # ========== Contact lookup (HubSpot) ==========
    hubspot_api_key: Optional[str] = Field(default=None, description="HubSpot private app token")
    hubspot_api_url: str = Field(default="https://api.hubapi.com")
    hubspot_bcc_address: Optional[str] = Field(
        default=None,
        description="HubSpot BCC address for logging customer e-mails"
    )
    hubspot_timeout_seconds: float = Field(default=10.0, ge=0.1, le=60)

    # ========== SMTP ==========
    smtp_host: Optional[str] = None
    smtp_port: int = Field(default=465, ge=1, le=65535)
    smtp_secure: bool = Field(default=True, description="Use implicit TLS (SMTP_SSL)")
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    email_from: Optional[str] = None
    email_from_name: str = "Geomiq Support"
    email_reply_to: Optional[str] = "support@geomiq.com"

    # ========== Monitoring ==========
    board_config_path: Path = Field(
        default=Path("boards.yaml"),
        description="Path to board configuration YAML file"
    )
    stale_after_hours: float = Field(default=36.0, gt=0)
    staleness_mode: str = Field(default="one_shot", description="one_shot or repeat")
    duplicate_window_seconds: int = Field(default=300, ge=1)
    entity_idle_ttl_hours: float = Field(default=24.0 * 14, gt=0)
    sweep_interval_seconds: int = Field(
        default=3600,
        description="Seconds between state sweeps (0 disables)",
        ge=0
    )

    # ========== Grafana OTLP Metrics ==========
    grafana_host: Optional[str] = None
    grafana_api_key: Optional[str] = None
    grafana_instance_id: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("staleness_mode")
    @classmethod
    def validate_staleness_mode(cls, v: str) -> str:
        allowed = {mode.value for mode in StalenessMode}
        if v not in allowed:
            raise ValueError(f"staleness_mode must be one of {allowed}")
        return v

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        allowed = {"zai", "openai", "mock"}
        if v not in allowed:
            raise ValueError(f"llm_provider must be one of {allowed}")
        return v

    def missing_core_credentials(self) -> List[str]:
        """Names of the settings the service cannot start without."""
        required = {
            "MONDAY_TOKEN": self.monday_token,
            "SLACK_BOT_TOKEN": self.slack_bot_token,
            "SLACK_CHANNEL_ID": self.slack_channel_id,
        }
        return [name for name, value in required.items() if not value]


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# ========== Constants ==========

class IssueKind(str, Enum):
    """Alert-worthy shipment conditions."""
    HELD_IN_CUSTOMS = "held-in-customs"
    DELIVERY_FAILURE = "delivery-failure"
    FINAL_MILE_ISSUE = "final-mile-issue"
    HUB_DELAY = "hub-delay"
    TRANSIT_DELAY = "transit-delay"
    DAMAGE_OR_LOSS = "damage-or-loss"
    EU_CUSTOMS_COMPLEXITY = "eu-customs-complexity"
    STALE_TRACKING = "stale-tracking"
    AMBIGUOUS_TIMEOUT = "ambiguous-timeout"
    STUCK_IN_TRANSIT = "stuck-in-transit"
    NONE = "none"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Carrier(str, Enum):
    UPS = "UPS"
    DHL = "DHL"
    FEDEX = "FedEx"
    UNKNOWN = "unknown"


class IssueSource(str, Enum):
    """Which component produced an issue."""
    RULES = "rules"
    MODEL = "model"
    STALENESS = "staleness"
    AMBIGUOUS = "ambiguous"


class StalenessMode(str, Enum):
    """
    How the same-text tracker behaves once past its threshold.

    ONE_SHOT alerts once per continuous run of identical text.
    REPEAT alerts on every observation and leaves rate limiting to the
    duplicate suppressor.
    """
    ONE_SHOT = "one_shot"
    REPEAT = "repeat"


UNKNOWN_LOCATION = "Unknown Location"

# Default lane per carrier, as operated by the logistics team.
CARRIER_ROUTES: Dict[Carrier, str] = {
    Carrier.UPS: "India-UK",
    Carrier.DHL: "China-UK",
    Carrier.FEDEX: "China-UK",
}

# Wording used in the one-line Slack summary: "<item> is <phrase> from <location>".
ISSUE_PHRASES: Dict[IssueKind, str] = {
    IssueKind.HELD_IN_CUSTOMS: "held in customs",
    IssueKind.DELIVERY_FAILURE: "experiencing delivery failure",
    IssueKind.FINAL_MILE_ISSUE: "experiencing a final-mile issue",
    IssueKind.HUB_DELAY: "delayed at a carrier hub",
    IssueKind.TRANSIT_DELAY: "experiencing transit delays",
    IssueKind.DAMAGE_OR_LOSS: "reported damaged or lost",
    IssueKind.EU_CUSTOMS_COMPLEXITY: "facing customs documentation requirements",
    IssueKind.STALE_TRACKING: "showing no tracking movement",
    IssueKind.AMBIGUOUS_TIMEOUT: "experiencing delayed customs processing",
    IssueKind.STUCK_IN_TRANSIT: "stuck in transit",
    IssueKind.NONE: "without issues",
}


# Global settings instance
settings = get_settings()
