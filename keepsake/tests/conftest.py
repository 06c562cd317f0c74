"""Test fixtures for keepsake tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import NameOID

from keepsake.lib.credential import CredentialHolder
from keepsake.lib.models import Credential, IssuanceRequest, OutputPaths
from keepsake.lib.vault_gateway import VaultGateway

INITIAL_TOKEN = "s.initialtoken"


class StopCycle(Exception):
    """Raised by fake sleeps to end an otherwise endless cycle."""


class RecordingSleep:
    """Fake sleep recording delays; raises StopCycle after `limit` calls."""

    def __init__(self, limit: int = 1) -> None:
        self.limit = limit
        self.delays: list[float] = []

    def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if len(self.delays) >= self.limit:
            raise StopCycle


def _generate_key() -> RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _build_certificate(
    subject: str,
    key: RSAPrivateKey,
    issuer: x509.Certificate | None,
    issuer_key: RSAPrivateKey,
    validity: timedelta,
) -> x509.Certificate:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, subject)])
    not_before = datetime.now(timezone.utc) - timedelta(minutes=1)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(issuer.subject if issuer else name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + validity)
        .add_extension(x509.BasicConstraints(ca=issuer is None, path_length=None), critical=True)
        .sign(issuer_key, hashes.SHA256())
    )


def _pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode("utf-8")


@pytest.fixture(scope="session")
def ca_key() -> RSAPrivateKey:
    """Generate RSA private key for the issuing CA."""
    return _generate_key()


@pytest.fixture(scope="session")
def ca_cert(ca_key: RSAPrivateKey) -> x509.Certificate:
    """Generate self-signed issuing CA certificate."""
    return _build_certificate("Test Issuing CA", ca_key, None, ca_key, timedelta(days=30))


@pytest.fixture(scope="session")
def leaf_key() -> RSAPrivateKey:
    """Generate RSA private key for the issued certificate."""
    return _generate_key()


@pytest.fixture(scope="session")
def leaf_cert(
    leaf_key: RSAPrivateKey, ca_cert: x509.Certificate, ca_key: RSAPrivateKey
) -> x509.Certificate:
    """Generate one-day certificate for svc.example.com signed by the CA."""
    return _build_certificate("svc.example.com", leaf_key, ca_cert, ca_key, timedelta(days=1))


@pytest.fixture(scope="session")
def issue_data(
    leaf_cert: x509.Certificate, leaf_key: RSAPrivateKey, ca_cert: x509.Certificate
) -> dict[str, str]:
    """PEM fields as returned in the data block of a PKI issue response."""
    return {
        "certificate": _pem(leaf_cert),
        "issuing_ca": _pem(ca_cert),
        "private_key": leaf_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("utf-8"),
        "serial_number": "unused",
    }


@pytest.fixture
def issue_response(issue_data: dict[str, str]) -> dict[str, Any]:
    """PKI issue response granting a one-day lease."""
    return {"lease_duration": 86400, "data": dict(issue_data)}


@pytest.fixture
def holder() -> CredentialHolder:
    """Return credential holder seeded with the environment token."""
    return CredentialHolder(Credential(token=INITIAL_TOKEN, lease_seconds=0))


@pytest.fixture
def mock_hvac_client() -> MagicMock:
    """Return mocked hvac client."""
    client = MagicMock()
    client.token = INITIAL_TOKEN
    return client


@pytest.fixture
def gateway(mock_hvac_client: MagicMock, holder: CredentialHolder) -> VaultGateway:
    """Return gateway bound to the mocked hvac client."""
    return VaultGateway(mock_hvac_client, holder)


@pytest.fixture
def issuance_request() -> IssuanceRequest:
    """Return request for svc.example.com without alt names or TTL."""
    return IssuanceRequest(mount="pki", role="server", common_name="svc.example.com")


@pytest.fixture
def output_paths(tmp_path: Path) -> OutputPaths:
    """Return output paths inside a temporary directory."""
    return OutputPaths(
        cert_file=tmp_path / "cert.pem",
        key_file=tmp_path / "key.pem",
        ca_file=tmp_path / "ca.pem",
    )
