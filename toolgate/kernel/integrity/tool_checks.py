"""Checks applied to tool definitions arriving at the gateway boundary."""

import logging

from toolgate.kernel.integrity.canonical import CanonicalizationError
from toolgate.kernel.integrity.fingerprint import schema_fingerprint, tool_checksum
from toolgate.kernel.integrity.tool_contract import Tool
from toolgate.kernel.integrity.tool_registry import (
    ChecksumMismatchError,
    FingerprintMismatchError,
    InvalidToolDefinitionError,
    ToolRegistry,
)
from toolgate.kernel.integrity.unicode_detector import detect_hidden_unicode

logger = logging.getLogger(__name__)


class HiddenCharactersError(ValueError):
    """Raised when a tool description contains hidden Unicode.

    Only the count is reported so the injected payload is not echoed into
    logs or responses.

    Attributes:
        count: Number of flagged characters
    """

    def __init__(self, count: int) -> None:
        super().__init__(f"ALERT: {count} hidden characters detected in tool description text")
        self.count = count


def validate_tool_description(text: str) -> None:
    """Reject descriptions carrying tag, bidi, invisible or non-characters.

    Raises:
        HiddenCharactersError: If any problematic character is present
    """
    detections = detect_hidden_unicode(text)
    if detections:
        logger.warning(
            "SECURITY ALERT: %d hidden characters detected in tool description", len(detections)
        )
        raise HiddenCharactersError(len(detections))


def validate_tool_integrity(tool: Tool) -> None:
    """Check a presented tool against the stamp it carries.

    Only stamp fields that are present are checked; use the registry's
    unsigned-tool policy to require a stamp.

    Raises:
        ChecksumMismatchError: If the checksum does not match the content
        FingerprintMismatchError: If the signature does not match the input schema
        InvalidToolDefinitionError: If the tool cannot be canonicalized
    """
    stamp = tool.security_metadata
    try:
        if stamp.checksum and tool_checksum(tool) != stamp.checksum:
            logger.warning("SECURITY ALERT: tool '%s' may have been tampered with", tool.name)
            raise ChecksumMismatchError(tool.name)
        if stamp.signature and schema_fingerprint(tool.input_schema) != stamp.signature:
            logger.warning("SECURITY ALERT: schema of tool '%s' may have been tampered with", tool.name)
            raise FingerprintMismatchError(tool.name)
    except CanonicalizationError as e:
        raise InvalidToolDefinitionError(tool.name, f"cannot hash tool '{tool.name}': {e.message}") from e


def validate_tool_security(tool: Tool, registry: ToolRegistry) -> Tool:
    """Vet a tool's description, then fetch its verified registry copy.

    Returns:
        The registry's verified copy of the tool

    Raises:
        HiddenCharactersError: If the description carries hidden characters
        ToolVerificationError: If the registry lookup or verification fails
    """
    validate_tool_description(tool.description)
    return registry.get_tool(tool.name)
