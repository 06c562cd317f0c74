"""Agent and Vault connection configuration."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigurationError
from .models import IssuanceRequest, OutputPaths

ENV_VAULT_TOKEN = "VAULT_TOKEN"
ENV_VAULT_ADDR = "VAULT_ADDR"
ENV_VAULT_CACERT = "VAULT_CACERT"
ENV_VAULT_CAPATH = "VAULT_CAPATH"
ENV_VAULT_CLIENT_CERT = "VAULT_CLIENT_CERT"
ENV_VAULT_CLIENT_KEY = "VAULT_CLIENT_KEY"
ENV_VAULT_SKIP_VERIFY = "VAULT_SKIP_VERIFY"
ENV_VAULT_NAMESPACE = "VAULT_NAMESPACE"

ENVIRONMENT_VARIABLES = [
    ENV_VAULT_TOKEN,
    ENV_VAULT_ADDR,
    ENV_VAULT_CACERT,
    ENV_VAULT_CAPATH,
    ENV_VAULT_CLIENT_CERT,
    ENV_VAULT_CLIENT_KEY,
    ENV_VAULT_SKIP_VERIFY,
    ENV_VAULT_NAMESPACE,
]

DEFAULT_VAULT_ADDR = "https://127.0.0.1:8200"

_TRUE_VALUES = {"1", "t", "true", "yes", "on"}
_FALSE_VALUES = {"", "0", "f", "false", "no", "off"}


@dataclass
class AgentConfig:
    """Startup configuration for one certificate identity."""

    request: IssuanceRequest
    outputs: OutputPaths
    hook_command: str = ""

    def __post_init__(self) -> None:
        if not self.request.common_name:
            raise ConfigurationError("certificate common name is required")
        for name in ("cert_file", "key_file", "ca_file"):
            if getattr(self.outputs, name) == Path(""):
                raise ConfigurationError(f"output path {name} is required")


@dataclass
class VaultConfig:
    """Vault client settings read from the standard VAULT_* variables."""

    address: str = DEFAULT_VAULT_ADDR
    ca_cert: str | None = None
    ca_path: str | None = None
    client_cert: str | None = None
    client_key: str | None = None
    skip_verify: bool = False
    namespace: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "VaultConfig":
        env = os.environ if environ is None else environ
        skip_verify = env.get(ENV_VAULT_SKIP_VERIFY, "").strip().lower()
        if skip_verify not in _TRUE_VALUES | _FALSE_VALUES:
            raise ConfigurationError(
                f"invalid {ENV_VAULT_SKIP_VERIFY} value: {env[ENV_VAULT_SKIP_VERIFY]!r}"
            )
        return cls(
            address=env.get(ENV_VAULT_ADDR) or DEFAULT_VAULT_ADDR,
            ca_cert=env.get(ENV_VAULT_CACERT) or None,
            ca_path=env.get(ENV_VAULT_CAPATH) or None,
            client_cert=env.get(ENV_VAULT_CLIENT_CERT) or None,
            client_key=env.get(ENV_VAULT_CLIENT_KEY) or None,
            skip_verify=skip_verify in _TRUE_VALUES,
            namespace=env.get(ENV_VAULT_NAMESPACE) or None,
        )

    @property
    def verify(self) -> bool | str:
        """TLS verification argument for the HTTP session."""
        if self.skip_verify:
            return False
        return self.ca_cert or self.ca_path or True

    @property
    def cert(self) -> tuple[str, str] | None:
        """Client certificate pair for TLS authentication, if configured."""
        if self.client_cert and self.client_key:
            return (self.client_cert, self.client_key)
        return None


def read_token(environ: Mapping[str, str] | None = None) -> str:
    """Return the Vault token from the environment.

    Raises:
        ConfigurationError: If VAULT_TOKEN is unset or empty
    """
    env = os.environ if environ is None else environ
    token = env.get(ENV_VAULT_TOKEN, "")
    if not token:
        raise ConfigurationError("No token found", context={"path": ENV_VAULT_TOKEN})
    return token
