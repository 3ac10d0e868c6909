"""Central configuration for the toolgate gateway.

Loads environment variables from a .env file at import time.
"""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel

from toolgate import __version__
from toolgate.kernel.integrity.batch_validator import DEFAULT_MAX_WORKERS
from toolgate.kernel.integrity.tool_manager import ToolManager
from toolgate.kernel.integrity.tool_registry import DEFAULT_CATALOG_TIMEOUT, ToolRegistry

# --- Load .env early so everything importing config sees the vars ---
load_dotenv()

#: Environment variable names
SECURITY_ENABLED_ENV = "TOOLGATE_SECURITY_ENABLED"
VALIDATE_CHECKSUMS_ENV = "TOOLGATE_VALIDATE_CHECKSUMS"
REJECT_UNSIGNED_TOOLS_ENV = "TOOLGATE_REJECT_UNSIGNED_TOOLS"
TOOL_REPO_URL_ENV = "TOOLGATE_TOOL_REPO_URL"
TOOL_REPO_API_KEY_ENV = "TOOLGATE_TOOL_REPO_API_KEY"
CATALOG_TIMEOUT_ENV = "TOOLGATE_CATALOG_TIMEOUT"
BATCH_WORKERS_ENV = "TOOLGATE_BATCH_WORKERS"
LOG_LEVEL_ENV = "TOOLGATE_LOG_LEVEL"

SERVER_NAME = "toolgate"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class GatewayConfig(BaseModel):
    """Resolved gateway settings."""

    security_enabled: bool = True
    validate_checksums: bool = True
    reject_unsigned_tools: bool = True
    tool_repo_url: str | None = None
    tool_repo_api_key: str | None = None
    catalog_timeout: float = DEFAULT_CATALOG_TIMEOUT
    batch_workers: int = DEFAULT_MAX_WORKERS
    log_level: str = "INFO"


def require_env(var_name: str) -> str:
    """Return the value of an environment variable or raise a clear error.

    Args:
        var_name: Environment variable to read

    Returns:
        The variable's non-empty value

    Raises:
        RuntimeError: If the environment variable is missing or empty
    """
    try:
        value = os.environ[var_name]
    except KeyError as exc:
        raise RuntimeError(f"Required environment variable '{var_name}' is not set.") from exc
    if not value:
        raise RuntimeError(f"Environment variable '{var_name}' is empty.")
    return value


def env_bool(var_name: str, default: bool) -> bool:
    """Parse a boolean environment variable, falling back to ``default`` when unset.

    Raises:
        RuntimeError: If the value is not a recognised boolean
    """
    raw = os.environ.get(var_name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise RuntimeError(f"Environment variable '{var_name}' is not a boolean: {raw!r}")


def _env_number(var_name: str, default: float, cast: type) -> float:
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable '{var_name}' is not a number: {raw!r}") from exc


def load_config() -> GatewayConfig:
    """Build the gateway configuration from the environment."""
    return GatewayConfig(
        security_enabled=env_bool(SECURITY_ENABLED_ENV, True),
        validate_checksums=env_bool(VALIDATE_CHECKSUMS_ENV, True),
        reject_unsigned_tools=env_bool(REJECT_UNSIGNED_TOOLS_ENV, True),
        tool_repo_url=os.environ.get(TOOL_REPO_URL_ENV) or None,
        tool_repo_api_key=os.environ.get(TOOL_REPO_API_KEY_ENV) or None,
        catalog_timeout=_env_number(CATALOG_TIMEOUT_ENV, DEFAULT_CATALOG_TIMEOUT, float),
        batch_workers=int(_env_number(BATCH_WORKERS_ENV, DEFAULT_MAX_WORKERS, int)),
        log_level=os.environ.get(LOG_LEVEL_ENV, "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the gateway process.

    Args:
        level: Level name; unknown names fall back to INFO
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_registry(config: GatewayConfig | None = None) -> ToolRegistry:
    """Construct a tool registry with the configured security policy and catalog credentials.

    Args:
        config: Settings to apply; read from the environment when omitted

    Returns:
        An empty registry ready for registration or catalog sync
    """
    config = config or load_config()
    registry = ToolRegistry(
        config.security_enabled,
        validate_checksums=config.validate_checksums,
        reject_unsigned_tools=config.reject_unsigned_tools,
        catalog_timeout=config.catalog_timeout,
    )
    if config.tool_repo_url and config.tool_repo_api_key:
        registry.set_registry_creds(config.tool_repo_url, config.tool_repo_api_key)
    return registry


def build_manager(
    config: GatewayConfig | None = None,
    name: str = SERVER_NAME,
    version: str = __version__,
) -> ToolManager:
    """Set up logging and construct the gateway's tool manager.

    Args:
        config: Settings to apply; read from the environment when omitted
        name: Server name reported during the handshake
        version: Server version reported during the handshake

    Returns:
        A manager fronting a registry built by :func:`build_registry`, with
        bulk validation sized by ``config.batch_workers``
    """
    config = config or load_config()
    configure_logging(config.log_level)
    return ToolManager(
        name,
        version,
        config.security_enabled,
        registry=build_registry(config),
        batch_workers=config.batch_workers,
    )
