"""Data models for credentials, issuance requests and certificate bundles."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TypedDict


@dataclass(frozen=True)
class Credential:
    """Vault token and the lease duration last reported for it."""

    token: str
    lease_seconds: int


@dataclass(frozen=True)
class TokenSecret:
    """Token details parsed from an unwrap, lookup-self or renew-self response."""

    client_token: str | None
    lease_seconds: int
    renewable: bool = False


@dataclass(frozen=True)
class IssuanceRequest:
    """Certificate request submitted to the PKI mount on every cycle.

    Comma separated alt_names and ip_sans are passed to Vault unchanged.
    """

    mount: str
    role: str
    common_name: str
    ip_sans: str = "127.0.0.1"
    alt_names: str = ""
    ttl: str = ""

    @property
    def path(self) -> str:
        """Vault path of the issue endpoint for this role."""
        return f"{self.mount}/issue/{self.role}"

    def to_params(self) -> dict[str, str]:
        """Build the request body; optional fields are sent only when set."""
        params = {
            "common_name": self.common_name,
            "ip_sans": self.ip_sans,
        }
        if self.alt_names:
            params["alt_names"] = self.alt_names
        if self.ttl:
            params["ttl"] = self.ttl
        return params


class CertificateMetadata(TypedDict):
    """Fields read from an issued certificate for logging and scheduling."""

    serialNumber: str
    commonName: str
    notBefore: str
    notAfter: str


@dataclass
class CertificateBundle:
    """One issuance result. Replaced wholesale on every cycle."""

    certificate: str
    private_key: str
    issuing_ca: str
    lease_seconds: int
    metadata: CertificateMetadata | None = field(default=None, compare=False)


@dataclass(frozen=True)
class OutputPaths:
    """Destination files for the issued artifacts."""

    cert_file: Path
    key_file: Path
    ca_file: Path
