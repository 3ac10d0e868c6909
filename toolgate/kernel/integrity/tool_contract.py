"""Tool definitions, security stamps and validation records.

Wire names follow the agent protocol (camelCase); Python code uses the
snake_case field names.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue

HASH_ALGORITHM = "SHA-256"


class ExecutionStatus(str, Enum):
    """Tri-state outcome of a tool-call validation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"  # Payload was checked and rejected, or no schema to check against
    ERROR = "error"  # Validator could not run


class SecurityMetadata(BaseModel):
    """Trust stamp attached to a tool at registration."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = ""  # e.g. "trusted-registry", "user-provided"
    signature: str = ""  # Schema fingerprint, hex SHA-256
    public_key_id: str = ""
    version: str = ""
    checksum: str = ""  # Tool checksum, hex SHA-256

    def is_empty(self) -> bool:
        """Return True when no field of the stamp is set."""
        return not (
            self.source or self.signature or self.public_key_id or self.version or self.checksum
        )

    def is_stamped(self) -> bool:
        """Return True when both checksum and schema fingerprint are present."""
        return bool(self.checksum and self.signature)


class ToolAnnotations(BaseModel):
    """Behavioral hints about a tool. Advisory only, never enforced.

    Defaults assume the worst: destructive and open-world.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    read_only_hint: bool = Field(default=False, alias="readOnlyHint")
    destructive_hint: bool = Field(default=True, alias="destructiveHint")
    idempotent_hint: bool = Field(default=False, alias="idempotentHint")
    open_world_hint: bool = Field(default=True, alias="openWorldHint")


class Tool(BaseModel):
    """Tool definition: the unit of trust.

    Only ``name``, ``description`` and ``input_schema`` participate in the
    checksum. ``security_metadata`` carries the stamp itself.
    """

    model_config = ConfigDict(frozen=False, populate_by_name=True)  # Registry mutates stamps

    name: str
    description: str = ""
    arguments: JsonValue = None
    parameters: dict[str, JsonValue] | None = None
    input_schema: JsonValue = Field(default=None, alias="inputSchema")
    output_schema: JsonValue = Field(default=None, alias="outputSchema")
    annotations: ToolAnnotations = Field(default_factory=ToolAnnotations)
    security_metadata: SecurityMetadata = Field(
        default_factory=SecurityMetadata, alias="secMetaData"
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump the tool using protocol field names."""
        return self.model_dump(mode="json", by_alias=True)


class ToolSet(BaseModel):
    """Registry listing with registry-wide security information."""

    model_config = ConfigDict(populate_by_name=True)

    tools: list[Tool] = Field(default_factory=list)
    security_enabled: bool = Field(default=False, alias="securityEnabled")
    schema_fingerprint_algo: str = Field(default=HASH_ALGORITHM, alias="schemaFingerprintAlgo")
    checksum_algo: str = Field(default=HASH_ALGORITHM, alias="checksumAlgo")


class ToolDescription(BaseModel):
    """Orchestrator-supplied tool description used for call-time validation.

    Schemas are raw JSON (bytes or text) or an already-parsed JSON value.
    """

    name: str
    description: str = ""
    input_schema: bytes | str | dict[str, JsonValue] | bool | None = None
    output_schema: bytes | str | dict[str, JsonValue] | bool | None = None


class ToolCall(BaseModel):
    """A model-issued tool call. Arguments are raw JSON."""

    function_name: str
    arguments: bytes | str = b""


class ToolValidationResult(BaseModel):
    """Per-tool record returned by tool validation requests."""

    name: str
    checksum: str | None = None
    valid: bool
    error: str | None = None


def new_tool(
    name: str,
    *,
    description: str = "",
    input_schema: JsonValue | None = None,
    output_schema: JsonValue = None,
    arguments: JsonValue = None,
    parameters: dict[str, JsonValue] | None = None,
    title: str = "",
    read_only_hint: bool = False,
    destructive_hint: bool = True,
    idempotent_hint: bool = False,
    open_world_hint: bool = True,
    security_metadata: SecurityMetadata | None = None,
) -> Tool:
    """Build a tool with explicit defaults for every optional field.

    Args:
        name: Unique tool name
        description: Free-text description shown to the model
        input_schema: JSON Schema for arguments; defaults to an empty object schema
        output_schema: JSON Schema for results; None means no output contract
        arguments: Example or default arguments
        parameters: Free-form parameter map
        title: Human-readable title
        read_only_hint: Tool does not modify its environment
        destructive_hint: Tool may perform destructive updates
        idempotent_hint: Repeated calls with the same arguments have no extra effect
        open_world_hint: Tool interacts with external entities
        security_metadata: Existing stamp, if any

    Returns:
        Unstamped Tool (unless security_metadata was supplied)
    """
    if input_schema is None:
        input_schema = {"type": "object", "properties": {}}

    return Tool(
        name=name,
        description=description,
        arguments=arguments,
        parameters=parameters,
        input_schema=input_schema,
        output_schema=output_schema,
        annotations=ToolAnnotations(
            title=title,
            read_only_hint=read_only_hint,
            destructive_hint=destructive_hint,
            idempotent_hint=idempotent_hint,
            open_world_hint=open_world_hint,
        ),
        security_metadata=security_metadata or SecurityMetadata(),
    )
