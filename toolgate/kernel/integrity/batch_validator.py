"""Validation of submitted tool definitions, one at a time or in bulk.

Each tool is checked independently: a bad tool produces an invalid record and
never aborts validation of the others.
"""

import json
import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from pydantic import ValidationError

from toolgate.kernel.integrity.canonical import CanonicalizationError
from toolgate.kernel.integrity.fingerprint import tool_checksum
from toolgate.kernel.integrity.tool_checks import (
    HiddenCharactersError,
    validate_tool_description,
    validate_tool_integrity,
)
from toolgate.kernel.integrity.tool_contract import Tool, ToolValidationResult
from toolgate.kernel.integrity.tool_registry import ToolRegistry, ToolVerificationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class SubmissionError(ValueError):
    """Raised when a validation request body is not a tool or list of tools."""


def _invalid(name: str, error: str) -> ToolValidationResult:
    return ToolValidationResult(name=name, valid=False, error=error)


def validate_tool(tool: Tool, registry: ToolRegistry | None = None) -> ToolValidationResult:
    """Validate one submitted tool definition.

    Checks, in order: hidden characters in the description, the presented
    stamp against the tool content, and, when ``registry`` rejects unsigned
    tools, that some stamp is present at all.

    Args:
        tool: Submitted tool
        registry: Registry whose security policy applies, if any

    Returns:
        Record carrying the tool checksum when valid, the reason when not
    """
    try:
        validate_tool_description(tool.description)
        validate_tool_integrity(tool)
    except (HiddenCharactersError, ToolVerificationError) as e:
        return _invalid(tool.name, str(e))

    if (
        registry is not None
        and registry.security_enabled
        and registry.reject_unsigned_tools
        and tool.security_metadata.is_empty()
    ):
        logger.warning("SECURITY ALERT: unsigned tool '%s' submitted", tool.name)
        return _invalid(tool.name, f"unsigned tool rejected: '{tool.name}'")

    try:
        checksum = tool_checksum(tool)
    except CanonicalizationError as e:
        return _invalid(tool.name, e.message)
    return ToolValidationResult(name=tool.name, checksum=checksum, valid=True)


def validate_tools(
    tools: Iterable[Tool],
    registry: ToolRegistry | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[ToolValidationResult]:
    """Validate many tools concurrently.

    Args:
        tools: Submitted tools
        registry: Registry whose security policy applies, if any
        max_workers: Size of the worker pool

    Returns:
        One record per tool, sorted by tool name
    """
    results: list[ToolValidationResult] = []
    lock = threading.Lock()

    def worker(tool: Tool) -> None:
        result = validate_tool(tool, registry)
        with lock:
            results.append(result)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(worker, tool) for tool in tools]
        for future in futures:
            future.result()

    invalid = sum(1 for r in results if not r.valid)
    if invalid:
        logger.info("Validated %d tools, %d rejected", len(results), invalid)
    return sorted(results, key=lambda r: r.name)


def _parse_entry(entry: Any) -> Tool | ToolValidationResult:
    try:
        return Tool.model_validate(entry)
    except ValidationError as e:
        name = entry.get("name", "") if isinstance(entry, dict) else ""
        return _invalid(str(name), f"invalid tool definition: {e.error_count()} field error(s)")


def validate_submission(
    raw: bytes | str,
    registry: ToolRegistry | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[ToolValidationResult]:
    """Validate a raw request body holding one tool or an array of tools.

    Entries that do not parse as a tool are reported as invalid records
    alongside the others.

    Raises:
        SubmissionError: If the body is not JSON or is neither object nor array
    """
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SubmissionError(f"invalid tool JSON: {e}") from e

    if isinstance(payload, dict):
        entries = [payload]
    elif isinstance(payload, list):
        entries = payload
    else:
        raise SubmissionError("expected a tool object or an array of tools")

    parsed = [_parse_entry(entry) for entry in entries]
    rejected = [p for p in parsed if isinstance(p, ToolValidationResult)]
    tools = [p for p in parsed if isinstance(p, Tool)]
    return sorted(
        validate_tools(tools, registry, max_workers) + rejected, key=lambda r: r.name
    )
