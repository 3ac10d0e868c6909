"""Schema fingerprints and tool checksums.

Both are hex SHA-256 digests over canonical JSON. The tool checksum covers a
fixed projection of the tool (name, description, inputSchema); changing that
field set changes what counts as tampering, so it must not drift.
"""

import hashlib
import json
from typing import Any

from toolgate.kernel.integrity.canonical import (
    CanonicalizationError,
    canonical_dumps,
    canonicalize,
)
from toolgate.kernel.integrity.tool_contract import SecurityMetadata, Tool


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def schema_fingerprint(schema: Any) -> str:
    """Compute the fingerprint of a JSON Schema.

    Args:
        schema: Raw JSON bytes or an already-parsed JSON value

    Returns:
        Hex SHA-256 of the canonical schema

    Raises:
        CanonicalizationError: If raw schema JSON is malformed
    """
    if isinstance(schema, (bytes, bytearray)):
        return _sha256_hex(canonicalize(bytes(schema)))
    return _sha256_hex(canonical_dumps(schema))


def checksum_projection(tool: Tool) -> dict[str, Any]:
    """Return the curated subset of a tool covered by its checksum."""
    return {
        "name": tool.name,
        "description": tool.description,
        "inputSchema": tool.input_schema,
    }


def tool_checksum(tool: Tool) -> str:
    """Compute the checksum of a tool definition.

    Args:
        tool: Tool to hash

    Returns:
        Hex SHA-256 of the canonical checksum projection

    Raises:
        CanonicalizationError: If the projection is not serializable
    """
    try:
        marshalled = json.dumps(checksum_projection(tool), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise CanonicalizationError(f"tool '{tool.name}' cannot be serialized: {e}") from e
    return _sha256_hex(canonicalize(marshalled))


def stamp_tool(tool: Tool) -> Tool:
    """Return a copy of ``tool`` with any missing stamp field filled in.

    Existing checksum or signature values are kept as presented, so a
    pre-stamped tool that does not match its content stays detectable.
    """
    stamped = tool.model_copy(deep=True)
    if not stamped.security_metadata.checksum:
        stamped.security_metadata.checksum = tool_checksum(stamped)
    if not stamped.security_metadata.signature:
        stamped.security_metadata.signature = schema_fingerprint(stamped.input_schema)
    return stamped


def secure_tool(tool: Tool) -> Tool:
    """Return a copy of ``tool`` carrying a fresh stamp and nothing else."""
    secured = tool.model_copy(deep=True)
    secured.security_metadata = SecurityMetadata(
        signature=schema_fingerprint(secured.input_schema),
        checksum=tool_checksum(secured),
    )
    return secured
