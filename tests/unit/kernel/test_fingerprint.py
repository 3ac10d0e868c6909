"""Canonicalization, schema fingerprint and tool checksum tests.

Test Coverage:
- Canonical form is independent of key order and whitespace
- Malformed JSON is rejected, never passed through
- Fingerprint and checksum are deterministic and sensitive to covered fields
- Output schema and annotations are outside the checksum projection
"""

import hashlib

import pytest

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
from toolgate.kernel.integrity.tool_contract import SecurityMetadata, new_tool


@pytest.mark.unit
@pytest.mark.P0
@pytest.mark.deterministic
class TestCanonicalize:
    """Deterministic JSON re-serialization."""

    def test_sorted_keys_compact_output(self) -> None:
        """Keys are sorted and insignificant whitespace removed."""
        assert canonicalize(b'{"b": 1,  "a": [1, 2, {"d": null, "c": true}]}') == (
            b'{"a":[1,2,{"c":true,"d":null}],"b":1}'
        )

    def test_reordered_documents_are_identical(self) -> None:
        """Structurally equal documents canonicalize to the same bytes."""
        first = '{"type": "object", "properties": {"x": {"type": "string"}}, "required": ["x"]}'
        second = """
        {
            "required": ["x"],
            "properties": {"x": {"type": "string"}},
            "type": "object"
        }
        """
        assert canonicalize(first) == canonicalize(second)

    def test_non_ascii_kept_as_utf8(self) -> None:
        """Non-ASCII characters are emitted as UTF-8, not escaped."""
        assert canonicalize('{"city": "Zürich"}') == '{"city":"Zürich"}'.encode("utf-8")

    def test_array_order_is_significant(self) -> None:
        """Arrays keep their order."""
        assert canonicalize("[1, 2]") != canonicalize("[2, 1]")

    @pytest.mark.parametrize("spelling", [b"10", b"10.0", b"1e1", b"1.0E+1", b"100e-1"])
    def test_equal_numbers_share_one_form(self, spelling: bytes) -> None:
        """Numbers equal as doubles canonicalize identically."""
        raw = b'{"type": "integer", "maximum": ' + spelling + b"}"

        assert canonicalize(raw) == b'{"maximum":10,"type":"integer"}'

    def test_fractions_and_large_numbers(self) -> None:
        """Non-integral and out-of-range values keep a single float form."""
        assert canonicalize(b"[0.5, 5e-1, 1e300]") == b"[0.5,0.5,1e+300]"
        assert canonicalize(b"[9007199254740993]") == canonicalize(b"[9007199254740992.0]")

    def test_parsed_values_normalized(self) -> None:
        """canonical_dumps applies the same number rules to parsed values."""
        assert canonical_dumps({"a": 10.0, "b": [2.0, True, None]}) == canonicalize(
            b'{"b": [2, true, null], "a": 1e1}'
        )

    def test_overflowing_number_rejected(self) -> None:
        with pytest.raises(CanonicalizationError):
            canonicalize(b"[1e400]")

    @pytest.mark.parametrize(
        "raw",
        [b"", b"{", b'{"a": }', b"{'a': 1}", b'{"a": NaN}', b"\xc3\x28"],
        ids=["empty", "truncated", "missing_value", "single_quotes", "nan", "bad_utf8"],
    )
    def test_malformed_json_rejected(self, raw: bytes) -> None:
        """Malformed input raises instead of passing raw bytes through."""
        with pytest.raises(CanonicalizationError):
            canonicalize(raw)

    def test_canonical_dumps_rejects_non_json_values(self) -> None:
        """Values outside the JSON data model are rejected."""
        with pytest.raises(CanonicalizationError):
            canonical_dumps({"when": object()})


@pytest.mark.unit
@pytest.mark.P0
@pytest.mark.oracle_integrity
class TestSchemaFingerprint:
    """SHA-256 over canonical schema."""

    SCHEMA = {"type": "object", "properties": {"location": {"type": "string"}}}

    def test_known_value(self) -> None:
        """Fingerprint is the hex SHA-256 of the canonical schema."""
        assert schema_fingerprint({"a": 1}) == hashlib.sha256(b'{"a":1}').hexdigest()

    def test_deterministic(self) -> None:
        """Repeated calls give the same fingerprint."""
        assert schema_fingerprint(self.SCHEMA) == schema_fingerprint(self.SCHEMA)

    def test_raw_and_parsed_schema_agree(self) -> None:
        """Raw JSON bytes fingerprint the same as the parsed schema."""
        raw = b'{"properties": {"location": {"type": "string"}}, "type": "object"}'
        assert schema_fingerprint(raw) == schema_fingerprint(self.SCHEMA)

    @pytest.mark.parametrize("maximum", [10, 10.0, b"1e1"])
    def test_number_spelling_does_not_change_fingerprint(self, maximum) -> None:
        """10, 10.0 and 1e1 fingerprint the same, raw or parsed."""
        expected = schema_fingerprint({"type": "integer", "maximum": 10})
        if isinstance(maximum, bytes):
            schema = b'{"type": "integer", "maximum": ' + maximum + b"}"
        else:
            schema = {"type": "integer", "maximum": maximum}

        assert schema_fingerprint(schema) == expected

    def test_any_change_changes_fingerprint(self) -> None:
        """Changing any part of the schema changes the fingerprint."""
        changed = {"type": "object", "properties": {"location": {"type": "number"}}}
        assert schema_fingerprint(changed) != schema_fingerprint(self.SCHEMA)

    def test_malformed_raw_schema(self) -> None:
        """Malformed raw schema propagates a canonicalization error."""
        with pytest.raises(CanonicalizationError):
            schema_fingerprint(b'{"type": ')


@pytest.mark.unit
@pytest.mark.P0
@pytest.mark.oracle_integrity
class TestToolChecksum:
    """SHA-256 over the name/description/inputSchema projection."""

    def make_tool(self, name: str = "get_weather", **overrides):
        fields = {"description": "Fetches weather", "input_schema": {"type": "object"}}
        fields.update(overrides)
        return new_tool(name, **fields)

    def test_known_value(self) -> None:
        """Checksum covers exactly name, description and inputSchema."""
        tool = new_tool("n", description="d", input_schema={"type": "object"})
        expected = hashlib.sha256(
            b'{"description":"d","inputSchema":{"type":"object"},"name":"n"}'
        ).hexdigest()

        assert tool_checksum(tool) == expected

    def test_deterministic(self) -> None:
        """Equal tools give equal checksums."""
        assert tool_checksum(self.make_tool()) == tool_checksum(self.make_tool())

    @pytest.mark.parametrize(
        "tool_kwargs",
        [
            {"name": "get_forecast"},
            {"description": "Fetches weather."},
            {"input_schema": {"type": "object", "required": ["location"]}},
        ],
        ids=["name", "description", "input_schema"],
    )
    def test_covered_fields_change_checksum(self, tool_kwargs) -> None:
        """Changing a covered field changes the checksum."""
        base = tool_checksum(self.make_tool())

        assert tool_checksum(self.make_tool(**tool_kwargs)) != base

    def test_uncovered_fields_do_not_change_checksum(self) -> None:
        """Output schema, annotations and stamp are outside the projection."""
        base = self.make_tool()
        other = self.make_tool(
            output_schema={"type": "string"},
            read_only_hint=True,
            destructive_hint=False,
            title="Weather",
            security_metadata=SecurityMetadata(source="trusted-registry"),
        )

        assert tool_checksum(other) == tool_checksum(base)


@pytest.mark.unit
@pytest.mark.P0
@pytest.mark.oracle_integrity
class TestStamping:
    """Attaching stamps to tools."""

    def test_stamp_fills_missing_fields_on_copy(self) -> None:
        """stamp_tool fills an empty stamp and leaves the original untouched."""
        tool = new_tool("get_weather", input_schema={"type": "object"})

        stamped = stamp_tool(tool)

        assert stamped.security_metadata.checksum == tool_checksum(tool)
        assert stamped.security_metadata.signature == schema_fingerprint({"type": "object"})
        assert tool.security_metadata.is_empty()

    def test_stamp_keeps_presented_values(self) -> None:
        """Fields already present are not recomputed."""
        tool = new_tool(
            "get_weather", security_metadata=SecurityMetadata(checksum="abc", version="1")
        )

        stamped = stamp_tool(tool)

        assert stamped.security_metadata.checksum == "abc"
        assert stamped.security_metadata.signature != ""
        assert stamped.security_metadata.version == "1"

    def test_secure_tool_replaces_metadata(self) -> None:
        """secure_tool writes a fresh stamp and drops other metadata."""
        tool = new_tool(
            "get_weather", security_metadata=SecurityMetadata(checksum="abc", source="x")
        )

        secured = secure_tool(tool)

        assert secured.security_metadata == SecurityMetadata(
            checksum=tool_checksum(tool), signature=schema_fingerprint(tool.input_schema)
        )
