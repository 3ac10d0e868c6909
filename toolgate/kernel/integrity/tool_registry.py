"""ToolRegistry: tamper-evident store of trusted tool definitions.

Tools are stamped with a checksum and schema fingerprint when registered and
re-verified on every lookup. A tool whose stamp does not match its content is
never returned.
"""

import logging
import threading
from enum import Enum

import httpx
from pydantic import ValidationError

from toolgate.kernel.integrity.canonical import CanonicalizationError
from toolgate.kernel.integrity.fingerprint import schema_fingerprint, stamp_tool, tool_checksum
from toolgate.kernel.integrity.tool_contract import HASH_ALGORITHM, Tool, ToolSet

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_TIMEOUT = 3.0  # seconds
API_KEY_HEADER = "X-API-Key"


class VerificationErrorCode(int, Enum):
    """Standardized tool verification error codes."""

    CHECKSUM_MISMATCH = 4001
    FINGERPRINT_MISMATCH = 4002
    UNSIGNED_TOOL = 4003
    TOOL_NOT_FOUND = 4004
    INVALID_TOOL_DEFINITION = 4005


class ToolVerificationError(Exception):
    """Base class for registry lookup and integrity failures.

    Attributes:
        code: Standardized error code
        message: Human-readable error description
        tool_name: Name of the tool concerned
    """

    code = VerificationErrorCode.INVALID_TOOL_DEFINITION

    def __init__(self, tool_name: str, message: str) -> None:
        """Initialize verification error.

        Args:
            tool_name: Name of the tool concerned
            message: Human-readable error description
        """
        super().__init__(message)
        self.message = message
        self.tool_name = tool_name


class ToolNotFoundError(ToolVerificationError):
    """Raised when a requested tool is not in the registry."""

    code = VerificationErrorCode.TOOL_NOT_FOUND

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"tool '{tool_name}' not found")


class ChecksumMismatchError(ToolVerificationError):
    """Stored checksum does not match the tool's content."""

    code = VerificationErrorCode.CHECKSUM_MISMATCH

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"tool checksum validation failed for '{tool_name}'")


class FingerprintMismatchError(ToolVerificationError):
    """Stored schema fingerprint does not match the tool's input schema."""

    code = VerificationErrorCode.FINGERPRINT_MISMATCH

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"schema fingerprint validation failed for '{tool_name}'")


class UnsignedToolError(ToolVerificationError):
    """Tool lacks a checksum or fingerprint while unsigned tools are rejected."""

    code = VerificationErrorCode.UNSIGNED_TOOL

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"unsigned tool rejected: '{tool_name}'")


class InvalidToolDefinitionError(ToolVerificationError):
    """Tool content could not be canonicalized for hashing."""

    code = VerificationErrorCode.INVALID_TOOL_DEFINITION


class CatalogSyncError(Exception):
    """Raised when the remote tool catalog cannot be loaded."""


class ToolRegistry:
    """Central registry of trusted tools.

    Provides:
    - Registration, stamping unstamped tools when security is enabled
    - Verified lookup: checksum, then fingerprint, then unsigned policy
    - Sorted listing without re-verification
    - All-or-nothing replacement from a remote trusted-tool catalog

    The registry owns its tools; callers always receive copies.
    """

    def __init__(
        self,
        security_enabled: bool = True,
        *,
        validate_checksums: bool = False,
        reject_unsigned_tools: bool = False,
        catalog_timeout: float = DEFAULT_CATALOG_TIMEOUT,
    ) -> None:
        """Initialize tool registry.

        Args:
            security_enabled: Stamp tools on registration and allow verification
            validate_checksums: Recompute and compare stamps on every lookup
            reject_unsigned_tools: Refuse lookups of tools missing a stamp field
            catalog_timeout: Timeout in seconds for the remote catalog request
        """
        self._tools: dict[str, Tool] = {}
        self._lock = threading.RLock()
        self._security_enabled = security_enabled
        self._validate_checksums = validate_checksums
        self._reject_unsigned_tools = reject_unsigned_tools
        self._catalog_timeout = catalog_timeout
        self._tool_repo: str | None = None
        self._api_key: str | None = None

    @property
    def security_enabled(self) -> bool:
        return self._security_enabled

    @property
    def validate_checksums(self) -> bool:
        return self._validate_checksums

    @property
    def reject_unsigned_tools(self) -> bool:
        return self._reject_unsigned_tools

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def set_security_options(self, validate_checksums: bool, reject_unsigned_tools: bool) -> None:
        """Reconfigure lookup policy. Applies to subsequent lookups only."""
        with self._lock:
            self._validate_checksums = validate_checksums
            self._reject_unsigned_tools = reject_unsigned_tools

    def set_registry_creds(self, url: str, api_key: str) -> None:
        """Configure the remote trusted-tool repository."""
        with self._lock:
            self._tool_repo = url
            self._api_key = api_key

    def _prepare(self, tool: Tool) -> Tool:
        if not self._security_enabled:
            return tool.model_copy(deep=True)
        try:
            return stamp_tool(tool)
        except CanonicalizationError as e:
            raise InvalidToolDefinitionError(
                tool.name, f"cannot stamp tool '{tool.name}': {e.message}"
            ) from e

    def register_tool(self, tool: Tool) -> None:
        """Register a tool, replacing any tool with the same name.

        Args:
            tool: Tool to register. The caller's instance is not modified.

        Raises:
            InvalidToolDefinitionError: If the tool cannot be canonicalized
        """
        prepared = self._prepare(tool)
        with self._lock:
            if prepared.name in self._tools:
                logger.info("Replacing registered tool '%s'", prepared.name)
            self._tools[prepared.name] = prepared
        logger.debug("Registered tool '%s'", prepared.name)

    def _verify(self, tool: Tool, validate_checksums: bool, reject_unsigned: bool) -> None:
        stamp = tool.security_metadata
        if validate_checksums:
            try:
                expected_checksum = tool_checksum(tool)
            except CanonicalizationError as e:
                raise InvalidToolDefinitionError(
                    tool.name, f"failed to generate expected checksum: {e.message}"
                ) from e
            if expected_checksum != stamp.checksum:
                logger.warning("SECURITY ALERT: checksum mismatch for tool '%s'", tool.name)
                raise ChecksumMismatchError(tool.name)

            try:
                expected_signature = schema_fingerprint(tool.input_schema)
            except CanonicalizationError as e:
                raise InvalidToolDefinitionError(
                    tool.name, f"failed to generate expected signature: {e.message}"
                ) from e
            if expected_signature != stamp.signature:
                logger.warning("SECURITY ALERT: schema fingerprint mismatch for tool '%s'", tool.name)
                raise FingerprintMismatchError(tool.name)

        if reject_unsigned and not stamp.is_stamped():
            logger.warning("SECURITY ALERT: unsigned tool '%s' rejected", tool.name)
            raise UnsignedToolError(tool.name)

    def get_tool(self, name: str) -> Tool:
        """Look up a tool and verify its integrity stamp.

        Args:
            name: Tool name

        Returns:
            Copy of the verified tool

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``
            ChecksumMismatchError: If the tool content no longer matches its checksum
            FingerprintMismatchError: If the input schema no longer matches its fingerprint
            UnsignedToolError: If the tool is unstamped and unsigned tools are rejected
            InvalidToolDefinitionError: If the stored tool cannot be canonicalized
        """
        with self._lock:
            if name not in self._tools:
                raise ToolNotFoundError(name)
            tool = self._tools[name].model_copy(deep=True)
            security_enabled = self._security_enabled
            validate_checksums = self._validate_checksums
            reject_unsigned = self._reject_unsigned_tools

        if security_enabled:
            self._verify(tool, validate_checksums, reject_unsigned)
        return tool

    def list_tools(self) -> ToolSet:
        """List all registered tools sorted by name.

        No per-tool verification is performed; use ``get_tool`` to obtain a
        trusted definition.
        """
        with self._lock:
            tools = [tool.model_copy(deep=True) for tool in self._tools.values()]
            security_enabled = self._security_enabled

        return ToolSet(
            tools=sorted(tools, key=lambda t: t.name),
            security_enabled=security_enabled,
            schema_fingerprint_algo=HASH_ALGORITHM,
            checksum_algo=HASH_ALGORITHM,
        )

    def load_tools(self, client: httpx.Client | None = None) -> int:
        """Replace the registry contents with the remote trusted-tool catalog.

        The catalog is a JSON object mapping tool name to tool definition. Any
        failure leaves the registry untouched. The request is not retried.

        Args:
            client: HTTP client to use; a short-lived client is created if omitted

        Returns:
            Number of tools loaded

        Raises:
            CatalogSyncError: On missing credentials, transport failure,
                non-200 status or an undecodable catalog
            InvalidToolDefinitionError: If a catalog tool cannot be stamped
        """
        with self._lock:
            url, api_key = self._tool_repo, self._api_key
        if not url or not api_key:
            raise CatalogSyncError("missing tool repo credentials")

        owns_client = client is None
        http = client if client is not None else httpx.Client()
        try:
            response = http.get(
                url, headers={API_KEY_HEADER: api_key}, timeout=self._catalog_timeout
            )
        except httpx.HTTPError as e:
            raise CatalogSyncError(f"tool repo request failed: {e}") from e
        finally:
            if owns_client:
                http.close()

        if response.status_code != httpx.codes.OK:
            raise CatalogSyncError(f"received non-200 status: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise CatalogSyncError(f"failed to decode tool catalog: {e}") from e
        if not isinstance(payload, dict):
            raise CatalogSyncError("tool catalog must be a JSON object keyed by tool name")

        try:
            catalog = {key: Tool.model_validate(entry) for key, entry in payload.items()}
        except ValidationError as e:
            raise CatalogSyncError(f"invalid tool in catalog: {e}") from e

        loaded = {key: self._prepare(tool) for key, tool in catalog.items()}
        with self._lock:
            self._tools = loaded
        logger.info("Loaded %d tools from trusted tool repo", len(loaded))
        return len(loaded)
