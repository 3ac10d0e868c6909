"""Sanity tests: package metadata and public entry points."""

import pytest


@pytest.mark.unit
@pytest.mark.P0
@pytest.mark.deterministic
def test_server_reports_package_version(monkeypatch: pytest.MonkeyPatch) -> None:
    """Verify the handshake announces the installed toolgate version."""
    import toolgate
    from toolgate import config

    monkeypatch.setattr(config, "configure_logging", lambda level: None)
    manager = config.build_manager(config.GatewayConfig())
    result = manager.handle_initialize(
        {"protocolVersion": "2025-03-26", "clientInfo": {"name": "sanity", "version": "0"}}
    )

    assert result.server_info.version == toolgate.__version__
    assert toolgate.__version__.count(".") == 2


@pytest.mark.unit
@pytest.mark.P0
@pytest.mark.deterministic
def test_stamp_algorithm_is_sha256() -> None:
    """Verify listings advertise the hash algorithm the stamps are built with."""
    from toolgate.kernel.integrity import ToolRegistry, new_tool, schema_fingerprint

    registry = ToolRegistry(True)
    registry.register_tool(new_tool("echo"))
    listing = registry.list_tools()

    assert listing.checksum_algo == listing.schema_fingerprint_algo == "SHA-256"
    assert len(schema_fingerprint({"type": "object"})) == 64


@pytest.mark.unit
@pytest.mark.P0
@pytest.mark.deterministic
def test_public_api_exports() -> None:
    """Verify the integrity and envelope modules export their entry points."""
    from toolgate.kernel import envelope, integrity

    for name in integrity.__all__:
        assert hasattr(integrity, name), name
    for name in envelope.__all__:
        assert hasattr(envelope, name), name
