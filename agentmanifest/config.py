"""
Centralized Configuration for the AgentManifest validator

Provides pydantic-based configuration with:
- Environment variable loading (.env support)
- Type validation
- Default values
- Sensitive settings validation

Usage:
    from agentmanifest.config import get_config

    config = get_config()
    print(config.probe_timeout)
"""

from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "agentmanifest-default-secret-change-in-production"

DEFAULT_BOILERPLATE_PATTERNS = [
    r"this api provides",
    r"lorem ipsum",
    r"todo:",
    r"replace this",
    r"example description",
    r"\[insert.*?\]",
]


class ValidatorConfig(BaseSettings):
    """
    Validator configuration

    All settings can be overridden via environment variables with the
    AGENTMANIFEST_ prefix, e.g. AGENTMANIFEST_PROBE_TIMEOUT=5.
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENTMANIFEST_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================
    # Network Probes
    # ============================================

    manifest_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for fetching the manifest document"
    )

    probe_timeout: float = Field(
        default=8.0,
        gt=0,
        description="Timeout in seconds for endpoint, auth and payment probes"
    )

    max_endpoint_probes: int = Field(
        default=3,
        ge=0,
        description="Maximum number of declared GET endpoints to probe"
    )

    max_bearer_probes: int = Field(
        default=2,
        ge=0,
        description="Maximum number of endpoints probed for a bearer 401"
    )

    user_agent: str = Field(
        default="agentmanifest-validator/0.3",
        description="User-Agent header sent with every probe"
    )

    # ============================================
    # Verification Credential
    # ============================================

    jwt_secret: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="Secret used to sign verification tokens (MUST be set in production)"
    )

    token_validity_days: int = Field(
        default=90,
        gt=0,
        description="Verification token lifetime in days"
    )

    token_issuer: str = Field(
        default="agentmanifest-validator",
        description="Issuer claim written into verification tokens"
    )

    # ============================================
    # Check Policy
    # ============================================

    boilerplate_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BOILERPLATE_PATTERNS),
        description="Case-insensitive regexes flagging placeholder text"
    )

    escalate_probe_warnings: bool = Field(
        default=False,
        description="Report failed auth/payment probes as errors instead of warnings"
    )

    # ============================================
    # Application
    # ============================================

    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    host: str = Field(default="127.0.0.1", description="HTTP wrapper bind address")

    port: int = Field(default=3001, description="HTTP wrapper port")

    # ============================================
    # Validators
    # ============================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(
                f"log_level must be one of: {', '.join(valid_levels)}"
            )
        return v.upper()

    @model_validator(mode="after")
    def validate_secret_in_production(self) -> "ValidatorConfig":
        """Ensure the signing secret was changed in production"""
        if self.environment == "production" and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError("jwt_secret must be changed from default value in production")
        return self


# Global config instance
_config: Optional[ValidatorConfig] = None


def get_config(force_reload: bool = False) -> ValidatorConfig:
    """
    Get the global configuration instance

    Args:
        force_reload: Force reload configuration from environment

    Returns:
        ValidatorConfig instance
    """
    global _config

    if _config is None or force_reload:
        _config = ValidatorConfig()

    return _config
