"""ToolManager: session handshake in front of the tool registry.

During ``initialize`` the client states which integrity checks it wants
enforced and the server advertises what it can verify. The client's request
becomes the registry's lookup policy for the session.
"""

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue

from toolgate.kernel.integrity.batch_validator import (
    DEFAULT_MAX_WORKERS,
    validate_submission,
    validate_tools,
)
from toolgate.kernel.integrity.tool_contract import Tool, ToolSet, ToolValidationResult
from toolgate.kernel.integrity.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-03-26"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Implementation(_WireModel):
    """Name and version of a client or server implementation."""

    name: str
    version: str


class SecurityCapabilities(_WireModel):
    """Integrity checks the server can perform."""

    schema_fingerprint: bool = Field(default=False, alias="schemaFingerprint")
    checksum_validation: bool = Field(default=False, alias="checksumValidation")


class ClientSecurityCapabilities(_WireModel):
    """Integrity checks the client asks the server to enforce."""

    validate_checksums: bool = Field(default=False, alias="validateChecksums")
    reject_unsigned_tools: bool = Field(default=False, alias="rejectUnsignedTools")


class ToolCapabilities(_WireModel):
    list_changed: bool = Field(default=False, alias="listChanged")
    security: SecurityCapabilities | None = None


class ClientToolCapabilities(_WireModel):
    security: ClientSecurityCapabilities | None = None


class ClientCapabilities(_WireModel):
    tools: ClientToolCapabilities | None = None
    experimental: dict[str, JsonValue] | None = None


class ServerCapabilities(_WireModel):
    tools: ToolCapabilities | None = None
    experimental: dict[str, JsonValue] | None = None


class InitializeParams(_WireModel):
    """Client side of the handshake."""

    protocol_version: str = Field(alias="protocolVersion")
    capabilities: ClientCapabilities = Field(default_factory=ClientCapabilities)
    client_info: Implementation = Field(alias="clientInfo")


class InitializeResult(_WireModel):
    """Server side of the handshake."""

    protocol_version: str = Field(default=PROTOCOL_VERSION, alias="protocolVersion")
    capabilities: ServerCapabilities
    server_info: Implementation = Field(alias="serverInfo")
    instructions: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """Dump using protocol field names, omitting unset optional sections."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ToolManager:
    """Registry front end for one server.

    Provides:
    - The initialize handshake, applying the client's security request
    - Registration, verified lookup and listing through the owned registry
    - Validation of submitted tools under the registry's policy
    """

    def __init__(
        self,
        name: str,
        version: str,
        security_enabled: bool = True,
        *,
        registry: ToolRegistry | None = None,
        batch_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        """Initialize tool manager.

        Args:
            name: Server name reported in the handshake
            version: Server version reported in the handshake
            security_enabled: Security setting for a registry created here
            registry: Existing registry to front; its own security setting wins
            batch_workers: Worker pool size for bulk validation
        """
        self._registry = registry if registry is not None else ToolRegistry(security_enabled)
        self._server_info = Implementation(name=name, version=version)
        self._batch_workers = batch_workers

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def batch_workers(self) -> int:
        return self._batch_workers

    @property
    def capabilities(self) -> ServerCapabilities:
        """Capabilities advertised to clients, derived from the registry."""
        enabled = self._registry.security_enabled
        return ServerCapabilities(
            tools=ToolCapabilities(
                list_changed=True,
                security=SecurityCapabilities(
                    schema_fingerprint=enabled, checksum_validation=enabled
                ),
            )
        )

    def handle_initialize(self, params: InitializeParams | dict[str, Any]) -> InitializeResult:
        """Process a client's initialize request.

        A client that sends ``capabilities.tools.security`` sets the lookup
        policy for subsequent reads; a client that omits it leaves the
        current policy in place.

        Args:
            params: Initialize parameters, as a model or decoded JSON

        Returns:
            Protocol version, server capabilities and server info

        Raises:
            pydantic.ValidationError: If ``params`` is not a valid request
        """
        if not isinstance(params, InitializeParams):
            params = InitializeParams.model_validate(params)

        tools = params.capabilities.tools
        if tools is not None and tools.security is not None:
            requested = tools.security
            self._registry.set_security_options(
                validate_checksums=requested.validate_checksums,
                reject_unsigned_tools=requested.reject_unsigned_tools,
            )
            logger.info(
                "Client '%s' set security options: validate_checksums=%s reject_unsigned_tools=%s",
                params.client_info.name,
                requested.validate_checksums,
                requested.reject_unsigned_tools,
            )

        if params.protocol_version != PROTOCOL_VERSION:
            logger.info(
                "Client '%s' requested protocol %s, answering with %s",
                params.client_info.name,
                params.protocol_version,
                PROTOCOL_VERSION,
            )

        return InitializeResult(
            protocol_version=PROTOCOL_VERSION,
            capabilities=self.capabilities,
            server_info=self._server_info.model_copy(),
        )

    def register_tool(self, tool: Tool) -> None:
        self._registry.register_tool(tool)

    def get_tool(self, name: str) -> Tool:
        return self._registry.get_tool(name)

    def list_tools(self) -> ToolSet:
        return self._registry.list_tools()

    def validate_tools(self, tools: Iterable[Tool]) -> list[ToolValidationResult]:
        """Validate submitted tools under this server's policy."""
        return validate_tools(tools, self._registry, self._batch_workers)

    def validate_submission(self, raw: bytes | str) -> list[ToolValidationResult]:
        """Validate a raw request body under this server's policy."""
        return validate_submission(raw, self._registry, self._batch_workers)
