"""
Pydantic configuration schema for ActionGate.

This module defines all configuration models with validation.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from actiongate.tools.translator import ProviderVariant

# =============================================================================
# Model Configuration
# =============================================================================


class ModelConfig(BaseModel):
    """External language model configuration."""

    model_config = ConfigDict(extra="allow")

    variant: ProviderVariant = Field(
        default=ProviderVariant.JSON,
        description="Tool-calling protocol: textual, json or structured",
    )
    name: str = Field(
        default="openai/gpt-4o-mini",
        description="LiteLLM model identifier",
    )
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_tokens: int | None = None
    request_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Timeout per model request in seconds",
    )


# =============================================================================
# Agent Configuration
# =============================================================================


class AgentConfig(BaseModel):
    """Execution loop configuration."""

    model_config = ConfigDict(extra="allow")

    max_iterations: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum model calls per task, for every provider variant",
    )
    format_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Reformulation retries for malformed textual transcripts",
    )
    history_window: int = Field(
        default=4,
        ge=0,
        description="Number of prior conversation turns sent with a command",
    )
    instructions: str | None = Field(
        default=None,
        description="Extra operator instructions appended to the system prompt",
    )


# =============================================================================
# Approval Configuration
# =============================================================================


class ApprovalConfig(BaseModel):
    """Approval gate configuration."""

    model_config = ConfigDict(extra="allow")

    ttl_ms: int = Field(
        default=300_000,
        gt=0,
        description="Time an approval request stays open, in milliseconds",
    )
    channel: Literal["console", "auto_approve", "auto_reject"] = Field(
        default="console",
        description="How approval requests reach a human",
    )


# =============================================================================
# Backend Configuration
# =============================================================================


class BackendConfig(BaseModel):
    """Backend action API configuration."""

    model_config = ConfigDict(extra="allow")

    base_url: str = "http://localhost:3000/api"
    api_key: str | None = None
    timeout: float = Field(default=30.0, gt=0)
    headers: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Audit & Logging Configuration
# =============================================================================


class AuditConfig(BaseModel):
    """Hierarchical execution log persistence."""

    model_config = ConfigDict(extra="allow")

    enable: bool = True
    path: str | None = Field(
        default=None,
        description="JSON Lines file; defaults to <home>/audit.jsonl",
    )
    buffer_size: int = Field(default=1, ge=1)


class LoggingConfig(BaseModel):
    """Python logging configuration for the CLI."""

    model_config = ConfigDict(extra="allow")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


# =============================================================================
# Root Configuration Model
# =============================================================================


class Config(BaseModel):
    """
    Root configuration model for ActionGate.

    Configuration can be loaded from YAML files and environment
    variables, merged in order of priority.
    """

    model_config = ConfigDict(extra="allow")

    model: ModelConfig = Field(default_factory=ModelConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    approval: ApprovalConfig = Field(default_factory=ApprovalConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
