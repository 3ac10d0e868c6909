"""SchemaValidator: JSON Schema validation for live tool calls.

Tool-call arguments and results are checked against the tool's declared
schemas and reported as a tri-state outcome: succeeded, failed (payload
rejected or no input schema to check against) or error (the validator itself
could not run).
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import jsonschema
from jsonschema import Draft7Validator
from jsonschema.validators import validator_for

from toolgate.kernel.integrity.tool_contract import (
    ExecutionStatus,
    Tool,
    ToolCall,
    ToolDescription,
)
from toolgate.kernel.integrity.tool_registry import (
    ToolNotFoundError,
    ToolRegistry,
    ToolVerificationError,
)

logger = logging.getLogger(__name__)


class ValidationErrorCode(str, Enum):
    """Standardized validation error codes."""

    SCHEMA_INVALID = "SCHEMA_INVALID"  # Input/output violates JSON Schema
    SCHEMA_MISSING = "SCHEMA_MISSING"  # Tool schema not defined
    SCHEMA_MALFORMED = "SCHEMA_MALFORMED"  # Schema itself is invalid
    DOCUMENT_MALFORMED = "DOCUMENT_MALFORMED"  # Payload is not JSON
    ENGINE_FAILURE = "ENGINE_FAILURE"  # Validation could not complete
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"  # No description for the called tool
    TOOL_UNTRUSTED = "TOOL_UNTRUSTED"  # Registry refused to release the tool


# Codes meaning "we could not check your data" rather than "your data is invalid"
INTERNAL_ERROR_CODES = frozenset(
    {
        ValidationErrorCode.SCHEMA_MALFORMED,
        ValidationErrorCode.DOCUMENT_MALFORMED,
        ValidationErrorCode.ENGINE_FAILURE,
        ValidationErrorCode.TOOL_NOT_FOUND,
        ValidationErrorCode.TOOL_UNTRUSTED,
    }
)


class SchemaValidationError(Exception):
    """Raised when schema validation fails.

    Attributes:
        code: Standardized error code
        message: Human-readable error description
        path: Dotted path to the first invalid field (if applicable)
        schema_path: Path within the schema that was violated first
        violations: Every violation reported by the engine, as "path: message"
    """

    def __init__(
        self,
        code: ValidationErrorCode,
        message: str,
        path: str = "",
        schema_path: str = "",
        violations: list[str] | None = None,
    ) -> None:
        """Initialize validation error.

        Args:
            code: Standardized error code
            message: Human-readable error description
            path: Dotted path to the first invalid field
            schema_path: Path within the schema that was violated first
            violations: Every violation reported by the engine
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.path = path
        self.schema_path = schema_path
        self.violations = violations or []


@dataclass(frozen=True)
class ValidationOutcome:
    """Tri-state validation result with the error detail, if any."""

    status: ExecutionStatus
    error: SchemaValidationError | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is ExecutionStatus.SUCCEEDED

    @classmethod
    def ok(cls) -> "ValidationOutcome":
        return cls(ExecutionStatus.SUCCEEDED)

    @classmethod
    def from_error(cls, error: SchemaValidationError) -> "ValidationOutcome":
        if error.code in INTERNAL_ERROR_CODES:
            return cls(ExecutionStatus.ERROR, error)
        return cls(ExecutionStatus.FAILED, error)


def _format_path(parts: Any) -> str:
    return ".".join(str(p) for p in parts)


def has_schema(schema: Any) -> bool:
    """Return False for an absent schema: None, empty bytes or empty text."""
    if schema is None:
        return False
    if isinstance(schema, (bytes, bytearray, str)):
        return len(schema) > 0
    return True


def load_json(raw: Any, code: ValidationErrorCode, what: str) -> Any:
    """Decode raw JSON (bytes or text); parsed values pass through.

    Raises:
        SchemaValidationError: With ``code`` if the JSON is malformed
    """
    if not isinstance(raw, (bytes, bytearray, str)):
        return raw
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SchemaValidationError(code=code, message=f"{what} is not valid JSON: {e}") from e


class SchemaValidator:
    """Validates data against JSON Schema.

    The validator class is chosen from the schema's ``$schema`` keyword and
    defaults to Draft 7. Every violation is collected, not just the first.
    """

    def __init__(self, default_validator: type = Draft7Validator) -> None:
        """Initialize schema validator.

        Args:
            default_validator: jsonschema validator class for schemas without ``$schema``
        """
        self.default_validator = default_validator

    def build(self, schema: Any) -> Any:
        """Check a schema and return a ready validator instance.

        Raises:
            SchemaValidationError: With code SCHEMA_MALFORMED if the schema is invalid
        """
        if not isinstance(schema, (dict, bool)):
            raise SchemaValidationError(
                code=ValidationErrorCode.SCHEMA_MALFORMED,
                message=f"Schema is malformed: expected object or boolean, got {type(schema).__name__}",
            )
        cls = validator_for(schema, default=self.default_validator)
        try:
            cls.check_schema(schema)
        except jsonschema.exceptions.SchemaError as e:
            raise SchemaValidationError(
                code=ValidationErrorCode.SCHEMA_MALFORMED,
                message=f"Schema is malformed: {e.message}",
            ) from e
        return cls(schema)

    def validate(self, data: Any, schema: Any) -> None:
        """Validate data against JSON Schema.

        Args:
            data: Data to validate (typically dict)
            schema: JSON Schema to validate against

        Raises:
            SchemaValidationError: SCHEMA_INVALID listing every violation,
                SCHEMA_MALFORMED for a bad schema, ENGINE_FAILURE if the
                engine could not finish (e.g. unresolvable $ref)

        Returns:
            None if validation succeeds
        """
        validator = self.build(schema)
        try:
            errors = list(validator.iter_errors(data))
        except Exception as e:
            raise SchemaValidationError(
                code=ValidationErrorCode.ENGINE_FAILURE,
                message=f"Validation failed: {e}",
            ) from e

        if not errors:
            return

        errors.sort(key=lambda err: (_format_path(err.absolute_path), err.message))
        violations = [
            f"{_format_path(err.absolute_path) or '(root)'}: {err.message}" for err in errors
        ]
        first_error = errors[0]
        raise SchemaValidationError(
            code=ValidationErrorCode.SCHEMA_INVALID,
            message="\n".join(f"- {v}" for v in violations),
            path=_format_path(first_error.absolute_path),
            schema_path=_format_path(first_error.absolute_schema_path),
            violations=violations,
        )


_default_validator = SchemaValidator()


def validate_input(
    tool: Tool | ToolDescription,
    arguments: bytes | str,
    validator: SchemaValidator | None = None,
) -> ValidationOutcome:
    """Validate raw tool-call arguments against the tool's input schema.

    A tool without an input schema fails: it cannot be called safely.

    Args:
        tool: Tool or tool description carrying ``input_schema``
        arguments: Raw JSON arguments
        validator: Engine to use; the module default if omitted

    Returns:
        ValidationOutcome (SUCCEEDED, FAILED or ERROR)
    """
    validator = validator or _default_validator

    if not has_schema(tool.input_schema):
        return ValidationOutcome(
            ExecutionStatus.FAILED,
            SchemaValidationError(
                code=ValidationErrorCode.SCHEMA_MISSING,
                message=f"no input schema defined for tool '{tool.name}'",
            ),
        )

    try:
        schema = load_json(tool.input_schema, ValidationErrorCode.SCHEMA_MALFORMED, "input schema")
        validator.build(schema)
    except SchemaValidationError as e:
        logger.error("Invalid input schema for tool '%s': %s", tool.name, e.message)
        return ValidationOutcome.from_error(
            SchemaValidationError(e.code, f"internal schema error for tool '{tool.name}'")
        )

    try:
        document = load_json(arguments, ValidationErrorCode.DOCUMENT_MALFORMED, "arguments")
        validator.validate(document, schema)
    except SchemaValidationError as e:
        if e.code is not ValidationErrorCode.SCHEMA_INVALID:
            logger.error("Input validation process error for tool '%s': %s", tool.name, e.message)
            return ValidationOutcome.from_error(
                SchemaValidationError(e.code, f"internal validation error for tool '{tool.name}'")
            )
        message = f"Input validation failed for tool '{tool.name}':\n{e.message}"
        logger.warning("SECURITY ALERT: %s", message)
        return ValidationOutcome.from_error(
            SchemaValidationError(e.code, message, e.path, e.schema_path, e.violations)
        )

    logger.debug("Input arguments for tool '%s' validated successfully", tool.name)
    return ValidationOutcome.ok()


def validate_output(
    tool: Tool | ToolDescription,
    raw_result: bytes | str,
    validator: SchemaValidator | None = None,
) -> ValidationOutcome:
    """Validate a raw tool result against the tool's output schema.

    A tool without an output schema has no output contract and succeeds.

    Args:
        tool: Tool or tool description carrying ``output_schema``
        raw_result: Raw JSON result
        validator: Engine to use; the module default if omitted

    Returns:
        ValidationOutcome (SUCCEEDED, FAILED or ERROR)
    """
    validator = validator or _default_validator

    if not has_schema(tool.output_schema):
        return ValidationOutcome.ok()

    try:
        schema = load_json(
            tool.output_schema, ValidationErrorCode.SCHEMA_MALFORMED, "output schema"
        )
        validator.build(schema)
    except SchemaValidationError as e:
        logger.error("Invalid output schema for tool '%s': %s", tool.name, e.message)
        return ValidationOutcome.from_error(
            SchemaValidationError(e.code, f"internal output schema error for tool '{tool.name}'")
        )

    try:
        document = load_json(raw_result, ValidationErrorCode.DOCUMENT_MALFORMED, "result")
        validator.validate(document, schema)
    except SchemaValidationError as e:
        if e.code is not ValidationErrorCode.SCHEMA_INVALID:
            logger.error("Output validation process error for tool '%s': %s", tool.name, e.message)
            return ValidationOutcome.from_error(
                SchemaValidationError(
                    e.code, f"internal output validation error for tool '{tool.name}'"
                )
            )
        raw_text = raw_result.decode("utf-8", "replace") if isinstance(raw_result, bytes) else raw_result
        message = (
            f"Tool '{tool.name}' output failed validation:\n{e.message}\nRaw Output: {raw_text}"
        )
        logger.warning("SECURITY ALERT: %s", message)
        return ValidationOutcome.from_error(
            SchemaValidationError(e.code, message, e.path, e.schema_path, e.violations)
        )

    logger.debug("Output content for tool '%s' validated successfully", tool.name)
    return ValidationOutcome.ok()


def find_tool_description(name: str, available_tools: list[ToolDescription]) -> ToolDescription:
    """Find a tool description by name in an orchestrator-supplied list.

    Raises:
        SchemaValidationError: With code TOOL_NOT_FOUND if absent
    """
    for description in available_tools:
        if description.name == name:
            return description
    raise SchemaValidationError(
        code=ValidationErrorCode.TOOL_NOT_FOUND,
        message=f"tool '{name}' not found or not permitted",
    )


def validate_tool_call(
    call: ToolCall, available_tools: list[ToolDescription]
) -> ValidationOutcome:
    """Validate a model-issued tool call's arguments before execution."""
    try:
        description = find_tool_description(call.function_name, available_tools)
    except SchemaValidationError as e:
        return ValidationOutcome.from_error(
            SchemaValidationError(e.code, f"tool description lookup failed: {e.message}")
        )
    return validate_input(description, call.arguments)


def validate_tool_call_output(
    raw_result: bytes | str, call: ToolCall, available_tools: list[ToolDescription]
) -> ValidationOutcome:
    """Validate a tool's result before it is returned to the model."""
    try:
        description = find_tool_description(call.function_name, available_tools)
    except SchemaValidationError as e:
        return ValidationOutcome.from_error(
            SchemaValidationError(e.code, f"tool description lookup failed: {e.message}")
        )
    return validate_output(description, raw_result)


def validate_registered_tool_call(
    name: str, arguments: bytes | str, registry: ToolRegistry
) -> tuple[Tool | None, ValidationOutcome]:
    """Look up a tool through the registry, then validate call arguments.

    The registry lookup verifies the tool's stamp, so a tampered tool is
    reported as ERROR and never returned.

    Returns:
        (tool, outcome); tool is None when the lookup failed
    """
    try:
        tool = registry.get_tool(name)
    except ToolVerificationError as e:
        code = (
            ValidationErrorCode.TOOL_NOT_FOUND
            if isinstance(e, ToolNotFoundError)
            else ValidationErrorCode.TOOL_UNTRUSTED
        )
        return None, ValidationOutcome.from_error(
            SchemaValidationError(code, f"tool lookup failed: {e.message}")
        )
    return tool, validate_input(tool, arguments)
