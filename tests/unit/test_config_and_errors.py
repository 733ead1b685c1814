# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import socket
import ssl

import httpx
import pytest

from deadline_client import config
from deadline_client.config import ConnectionConfig, Protocol, TlsMaterial
from deadline_client.errors import (
    ConfigurationError,
    ErrorCategory,
    RemoteFailure,
    TransportError,
    categorize_exception,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "DEADLINE_HOST",
        "DEADLINE_PORT",
        "DEADLINE_PROTOCOL",
        "DEADLINE_CA_FILE",
        "DEADLINE_PFX_FILE",
        "DEADLINE_PASSPHRASE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_connection_config_defaults_and_urls():
    cfg = ConnectionConfig(host="hostname", port=8080)
    assert cfg.protocol is Protocol.PLAIN
    assert dict(cfg.headers) == {}
    assert cfg.tls is None
    assert cfg.base_url == "http://hostname:8080"
    assert ConnectionConfig(host="hostname", port=4433, protocol="https").base_url == "https://hostname:4433"


def test_port_zero_is_allowed():
    assert ConnectionConfig(host="hostname", port=0).port == 0


@pytest.mark.parametrize("port", [-1, "8080", 80.0, True, None])
def test_invalid_port_is_rejected(port):
    with pytest.raises(ConfigurationError):
        ConnectionConfig(host="hostname", port=port)


def test_empty_host_is_rejected():
    with pytest.raises(ConfigurationError):
        ConnectionConfig(host="", port=8080)


@pytest.mark.parametrize(
    "host",
    ["rq/evil", "rq:9999", "user@rq", "rq?x=1", "rq#frag", "rq evil", "[rq]", "[::1]:80", "::zz"],
)
def test_hosts_with_url_parts_are_rejected(host):
    with pytest.raises(ConfigurationError):
        ConnectionConfig(host=host, port=8080)


@pytest.mark.parametrize("host", ["::1", "[::1]", "fe80::1"])
def test_ipv6_literal_hosts_are_bracketed(host):
    cfg = ConnectionConfig(host=host, port=8080)
    assert cfg.host == host.strip("[]")
    assert cfg.base_url == f"http://[{cfg.host}]:8080"
    assert cfg.url.port == 8080


def test_protocol_parse():
    assert Protocol.parse("http") is Protocol.PLAIN
    assert Protocol.parse(" HTTPS ") is Protocol.SECURE
    assert Protocol.parse("secure") is Protocol.SECURE
    assert Protocol.parse(Protocol.PLAIN) is Protocol.PLAIN
    with pytest.raises(ConfigurationError):
        Protocol.parse("ftp")
    with pytest.raises(ConfigurationError):
        ConnectionConfig(host="hostname", port=1, protocol="TLS")


def test_headers_are_validated_and_frozen():
    cfg = ConnectionConfig(host="hostname", port=1, headers={"X-A": "1"})
    with pytest.raises(TypeError):
        cfg.headers["X-B"] = "2"  # type: ignore[index]
    with pytest.raises(ConfigurationError):
        ConnectionConfig(host="hostname", port=1, headers={"X-A": 1})  # type: ignore[dict-item]


def test_tls_material_normalizes_text_to_bytes():
    material = TlsMaterial(ca="cacontent", pfx="pfxcontent", passphrase="passphrasecontent")
    assert material.ca == b"cacontent"
    assert material.pfx == b"pfxcontent"
    assert material.passphrase == "passphrasecontent"
    assert "passphrasecontent" not in repr(material)
    with pytest.raises(ConfigurationError):
        ConnectionConfig(host="hostname", port=1, tls={"ca": "x"})  # type: ignore[arg-type]


def test_tls_material_rejects_wrong_types():
    with pytest.raises(ConfigurationError, match="ca"):
        TlsMaterial(ca=123)  # type: ignore[arg-type]
    with pytest.raises(ConfigurationError, match="pfx"):
        TlsMaterial(pfx=["pfx"])  # type: ignore[arg-type]
    with pytest.raises(ConfigurationError, match="passphrase"):
        TlsMaterial(passphrase=b"secret")  # type: ignore[arg-type]
    assert TlsMaterial(pfx=bytearray(b"pfx")).pfx == b"pfx"


def test_from_env_defaults():
    cfg = config.load_connection_config()
    assert cfg.host == "localhost"
    assert cfg.port == 8080
    assert cfg.protocol is Protocol.PLAIN
    assert cfg.tls is None


def test_from_env_https_reads_tls_files(monkeypatch, tmp_path):
    ca_file = tmp_path / "ca.pem"
    ca_file.write_bytes(b"cacontent")
    pfx_file = tmp_path / "client.pfx"
    pfx_file.write_bytes(b"pfxcontent")
    monkeypatch.setenv("DEADLINE_HOST", "renderqueue")
    monkeypatch.setenv("DEADLINE_PROTOCOL", "HTTPS")
    monkeypatch.setenv("DEADLINE_CA_FILE", str(ca_file))
    monkeypatch.setenv("DEADLINE_PFX_FILE", str(pfx_file))
    monkeypatch.setenv("DEADLINE_PASSPHRASE", "passphrasecontent")

    cfg = config.load_connection_config()

    assert cfg.host == "renderqueue"
    assert cfg.port == 4433
    assert cfg.protocol is Protocol.SECURE
    assert cfg.tls == TlsMaterial(ca=b"cacontent", pfx=b"pfxcontent", passphrase="passphrasecontent")


def test_from_env_invalid_port_falls_back(monkeypatch):
    monkeypatch.setenv("DEADLINE_PORT", "not-a-port")
    assert config.load_connection_config().port == 8080
    monkeypatch.setenv("DEADLINE_PORT", "9090")
    assert config.load_connection_config().port == 9090


def test_from_env_negative_port_is_rejected(monkeypatch):
    monkeypatch.setenv("DEADLINE_PORT", "-5")
    with pytest.raises(ConfigurationError):
        config.load_connection_config()


def test_from_env_missing_tls_file(monkeypatch, tmp_path):
    monkeypatch.setenv("DEADLINE_CA_FILE", str(tmp_path / "missing.pem"))
    with pytest.raises(ConfigurationError, match="DEADLINE_CA_FILE"):
        config.load_connection_config()


def test_categorize_exception():
    request = httpx.Request("GET", "http://hostname")
    assert categorize_exception(httpx.ReadTimeout("slow", request=request)) is ErrorCategory.TIMEOUT
    assert categorize_exception(httpx.ConnectError("refused", request=request)) is ErrorCategory.CONNECTION_ERROR
    assert categorize_exception(ConnectionResetError()) is ErrorCategory.CONNECTION_ERROR
    assert categorize_exception(ssl.SSLError("bad cert")) is ErrorCategory.SSL_ERROR
    assert categorize_exception(socket.gaierror("no such host")) is ErrorCategory.DNS_ERROR
    assert categorize_exception(RuntimeError("boom")) is ErrorCategory.UNKNOWN_ERROR


def test_categorize_exception_follows_cause_chain():
    request = httpx.Request("GET", "https://hostname")
    try:
        try:
            raise ssl.SSLCertVerificationError("certificate verify failed")
        except ssl.SSLError as exc:
            raise httpx.ConnectError("handshake failed", request=request) from exc
    except httpx.ConnectError as wrapped:
        assert categorize_exception(wrapped) is ErrorCategory.SSL_ERROR


def test_error_types_carry_details():
    failure = RemoteFailure(404, "Not Found")
    assert str(failure) == "Not Found"
    assert failure.status_code == 404

    underlying = httpx.ConnectError("refused")
    error = TransportError(underlying)
    assert error.error is underlying
    assert str(error) == "refused"
    assert error.category is ErrorCategory.CONNECTION_ERROR

    assert issubclass(ConfigurationError, ValueError)
