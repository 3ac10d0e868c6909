"""Integrity module: tool stamping, verified registry and call validation."""

from toolgate.kernel.integrity.batch_validator import (
    SubmissionError,
    validate_submission,
    validate_tool,
    validate_tools,
)
from toolgate.kernel.integrity.canonical import (
    CanonicalizationError,
    canonical_dumps,
    canonicalize,
)
from toolgate.kernel.integrity.fingerprint import (
    schema_fingerprint,
    secure_tool,
    stamp_tool,
    tool_checksum,
)
from toolgate.kernel.integrity.schema_validator import (
    SchemaValidationError,
    SchemaValidator,
    ValidationErrorCode,
    ValidationOutcome,
    validate_input,
    validate_output,
    validate_registered_tool_call,
    validate_tool_call,
    validate_tool_call_output,
)
from toolgate.kernel.integrity.tool_checks import (
    HiddenCharactersError,
    validate_tool_description,
    validate_tool_integrity,
    validate_tool_security,
)
from toolgate.kernel.integrity.tool_contract import (
    ExecutionStatus,
    SecurityMetadata,
    Tool,
    ToolAnnotations,
    ToolCall,
    ToolDescription,
    ToolSet,
    ToolValidationResult,
    new_tool,
)
from toolgate.kernel.integrity.tool_manager import (
    PROTOCOL_VERSION,
    ClientSecurityCapabilities,
    Implementation,
    InitializeParams,
    InitializeResult,
    SecurityCapabilities,
    ServerCapabilities,
    ToolManager,
)
from toolgate.kernel.integrity.tool_registry import (
    CatalogSyncError,
    ChecksumMismatchError,
    FingerprintMismatchError,
    InvalidToolDefinitionError,
    ToolNotFoundError,
    ToolRegistry,
    ToolVerificationError,
    UnsignedToolError,
    VerificationErrorCode,
)
from toolgate.kernel.integrity.unicode_detector import (
    DetectedCharInfo,
    DetectionCategory,
    detect_hidden_unicode,
)

__all__ = [
    "Tool",
    "ToolAnnotations",
    "SecurityMetadata",
    "ToolCall",
    "ToolDescription",
    "ToolSet",
    "ToolValidationResult",
    "ExecutionStatus",
    "new_tool",
    "canonicalize",
    "canonical_dumps",
    "CanonicalizationError",
    "schema_fingerprint",
    "tool_checksum",
    "stamp_tool",
    "secure_tool",
    "ToolRegistry",
    "ToolVerificationError",
    "ToolNotFoundError",
    "ChecksumMismatchError",
    "FingerprintMismatchError",
    "UnsignedToolError",
    "InvalidToolDefinitionError",
    "CatalogSyncError",
    "VerificationErrorCode",
    "SchemaValidator",
    "SchemaValidationError",
    "ValidationErrorCode",
    "ValidationOutcome",
    "validate_input",
    "validate_output",
    "validate_tool_call",
    "validate_tool_call_output",
    "validate_registered_tool_call",
    "HiddenCharactersError",
    "validate_tool_description",
    "validate_tool_integrity",
    "validate_tool_security",
    "DetectedCharInfo",
    "DetectionCategory",
    "detect_hidden_unicode",
    "SubmissionError",
    "validate_tool",
    "validate_tools",
    "validate_submission",
    "ToolManager",
    "PROTOCOL_VERSION",
    "Implementation",
    "SecurityCapabilities",
    "ClientSecurityCapabilities",
    "ServerCapabilities",
    "InitializeParams",
    "InitializeResult",
]
