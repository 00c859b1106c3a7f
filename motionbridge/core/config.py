"""
Motionbridge Configuration
--------------------------
Centralized configuration for the bridge server, the backend client,
the remote tool discovery round trip and the completion service.
Loads from environment variables and YAML config files.
"""

import os
import logging
from typing import Optional, List

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger("Motionbridge.Config")

DEFAULT_BACKEND_URL = "http://localhost:8036"
DEFAULT_COMPLETION_URL = "http://localhost:1234/v1"
DEFAULT_COMPLETION_MODEL = "meta-llama-3.1-8b-instruct"


def _parse_optional_float_env(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
        if value <= 0:
            raise ValueError
        return value
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; expected positive float. Ignoring.",
            name,
            raw,
        )
        return None


def _parse_optional_int_env(name: str, minimum: int = 0) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = int(raw)
        if value < minimum:
            raise ValueError
        return value
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; expected integer >= %d. Ignoring.",
            name,
            raw,
            minimum,
        )
        return None


def _parse_csv_env(name: str) -> Optional[List[str]]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    return [item.strip() for item in raw.split(",") if item.strip()]


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = "127.0.0.1"
    port: int = 8040
    log_level: str = "info"
    log_file: Optional[str] = None
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class BackendConfig(BaseModel):
    """Motion-control backend (device service) configuration."""
    base_url: str = DEFAULT_BACKEND_URL
    timeout_seconds: float = 15.0
    max_retries: int = 1


class McpConfig(BaseModel):
    """Remote tool discovery and session transport configuration."""
    discovery_url: str = f"{DEFAULT_BACKEND_URL}/mcp"
    discovery_timeout_seconds: float = 5.0
    protocol_version: str = "2025-06-18"
    server_name: str = "motionbridge"
    sse_keepalive_seconds: float = 15.0


class CompletionConfig(BaseModel):
    """OpenAI-compatible chat completion service (LM Studio by default)."""
    base_url: str = DEFAULT_COMPLETION_URL
    api_key: str = "lm-studio"
    model: str = DEFAULT_COMPLETION_MODEL
    temperature: float = 0.2
    max_tokens: int = 2000
    timeout_seconds: float = 120.0


class PollConfig(BaseModel):
    """Long-running operation polling defaults."""
    settle_seconds: float = 2.0
    default_timeout_seconds: float = 60.0
    default_interval_ms: int = 1500


class GuardConfig(BaseModel):
    """Placeholder-value guard policy."""
    entity_ref_params: List[str] = Field(default_factory=lambda: ["deviceRef"])
    extra_placeholder_patterns: List[str] = Field(default_factory=list)


class BridgeConfig(BaseModel):
    """Root configuration for Motionbridge."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    mcp: McpConfig = Field(default_factory=McpConfig)
    completion: CompletionConfig = Field(default_factory=CompletionConfig)
    poll: PollConfig = Field(default_factory=PollConfig)
    guard: GuardConfig = Field(default_factory=GuardConfig)

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        """
        Load configuration from environment variables.

        Environment variables override defaults:
        - MOTIONBRIDGE_HOST / MOTIONBRIDGE_PORT / MOTIONBRIDGE_LOG_LEVEL
        - MOTIONBRIDGE_LOG_FILE: optional log file path
        - MOTIONBRIDGE_CORS_ORIGINS: comma-separated allowed origins
        - MOTIONBRIDGE_BACKEND_URL: device service base URL
        - MOTIONBRIDGE_BACKEND_TIMEOUT / MOTIONBRIDGE_BACKEND_RETRIES
        - MOTIONBRIDGE_DISCOVERY_URL: remote MCP endpoint for tool discovery
        - MOTIONBRIDGE_DISCOVERY_TIMEOUT: seconds for the discovery round trip
        - MOTIONBRIDGE_LLM_URL / MOTIONBRIDGE_LLM_API_KEY / MOTIONBRIDGE_LLM_MODEL
        - MOTIONBRIDGE_LLM_TIMEOUT: completion request timeout
        - MOTIONBRIDGE_POLL_SETTLE / MOTIONBRIDGE_POLL_TIMEOUT / MOTIONBRIDGE_POLL_INTERVAL_MS
        - MOTIONBRIDGE_ENTITY_REF_PARAMS: comma-separated entity-reference parameter names
        """
        backend_url = os.environ.get("MOTIONBRIDGE_BACKEND_URL", DEFAULT_BACKEND_URL).rstrip("/")
        config = cls(
            server=ServerConfig(
                host=os.environ.get("MOTIONBRIDGE_HOST", "127.0.0.1"),
                port=int(os.environ.get("MOTIONBRIDGE_PORT", "8040")),
                log_level=os.environ.get("MOTIONBRIDGE_LOG_LEVEL", "info").lower(),
                log_file=os.environ.get("MOTIONBRIDGE_LOG_FILE") or None,
            ),
            backend=BackendConfig(base_url=backend_url),
            mcp=McpConfig(
                discovery_url=os.environ.get("MOTIONBRIDGE_DISCOVERY_URL", f"{backend_url}/mcp"),
            ),
            completion=CompletionConfig(
                base_url=os.environ.get("MOTIONBRIDGE_LLM_URL", DEFAULT_COMPLETION_URL).rstrip("/"),
                api_key=os.environ.get("MOTIONBRIDGE_LLM_API_KEY", "lm-studio"),
                model=os.environ.get("MOTIONBRIDGE_LLM_MODEL", DEFAULT_COMPLETION_MODEL),
            ),
        )

        origins = _parse_csv_env("MOTIONBRIDGE_CORS_ORIGINS")
        if origins:
            config.server.cors_origins = origins

        backend_timeout = _parse_optional_float_env("MOTIONBRIDGE_BACKEND_TIMEOUT")
        if backend_timeout is not None:
            config.backend.timeout_seconds = backend_timeout
        backend_retries = _parse_optional_int_env("MOTIONBRIDGE_BACKEND_RETRIES")
        if backend_retries is not None:
            config.backend.max_retries = backend_retries

        discovery_timeout = _parse_optional_float_env("MOTIONBRIDGE_DISCOVERY_TIMEOUT")
        if discovery_timeout is not None:
            config.mcp.discovery_timeout_seconds = discovery_timeout

        llm_timeout = _parse_optional_float_env("MOTIONBRIDGE_LLM_TIMEOUT")
        if llm_timeout is not None:
            config.completion.timeout_seconds = llm_timeout

        settle = _parse_optional_float_env("MOTIONBRIDGE_POLL_SETTLE")
        if settle is not None:
            config.poll.settle_seconds = settle
        poll_timeout = _parse_optional_float_env("MOTIONBRIDGE_POLL_TIMEOUT")
        if poll_timeout is not None:
            config.poll.default_timeout_seconds = poll_timeout
        poll_interval = _parse_optional_int_env("MOTIONBRIDGE_POLL_INTERVAL_MS", minimum=1)
        if poll_interval is not None:
            config.poll.default_interval_ms = poll_interval

        entity_params = _parse_csv_env("MOTIONBRIDGE_ENTITY_REF_PARAMS")
        if entity_params:
            config.guard.entity_ref_params = entity_params

        return config

    @classmethod
    def from_yaml(cls, path: str) -> "BridgeConfig":
        """Load configuration from a YAML file layered over the environment."""
        base = cls.from_env()
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Config file not found: %s; using environment defaults", path)
            return base
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

        merged = base.model_dump()
        for section, values in data.items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(values)
            else:
                merged[section] = values
        return cls(**merged)
