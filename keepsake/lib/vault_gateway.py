"""Vault gateway for token lifecycle and PKI issuance operations."""

import threading
from collections.abc import Callable
from typing import Any

import hvac
from hvac.exceptions import InvalidPath, InvalidRequest, VaultError
from requests.exceptions import RequestException

from .cert_utils import deserialize_certificate, extract_certificate_metadata
from .config import VaultConfig
from .credential import CredentialHolder
from .errors import BackendError
from .models import CertificateBundle, Credential, IssuanceRequest, TokenSecret

NOT_A_WRAPPING_TOKEN = "wrapping token is not valid or does not exist"

BUNDLE_FIELDS = ("certificate", "issuing_ca", "private_key")


def _parse_lease(value: Any, field_name: str) -> int:
    """Coerce a lease duration (int or numeric string) to non-negative seconds."""
    if isinstance(value, bool):
        raise BackendError(f"{field_name} is not a number: {value!r}")
    try:
        lease = int(value)
    except (TypeError, ValueError) as e:
        raise BackendError(f"{field_name} is not a number: {value!r}") from e
    if lease < 0:
        raise BackendError(f"{field_name} is negative: {lease}")
    return lease


def _require_mapping(response: Any, description: str) -> dict[str, Any]:
    if not isinstance(response, dict):
        raise BackendError(f"{description} returned a malformed response")
    return response


def _parse_auth(response: dict[str, Any], description: str) -> TokenSecret:
    """Read the auth block returned by unwrap and renew-self."""
    auth = response.get("auth")
    if not isinstance(auth, dict):
        raise BackendError(f"{description} response has no auth block")
    client_token = auth.get("client_token")
    if not isinstance(client_token, str) or not client_token:
        raise BackendError(f"{description} response has no client token")
    return TokenSecret(
        client_token=client_token,
        lease_seconds=_parse_lease(auth.get("lease_duration", 0), "auth.lease_duration"),
        renewable=bool(auth.get("renewable", False)),
    )


def parse_bundle(response: dict[str, Any]) -> CertificateBundle:
    """Build a CertificateBundle from a PKI issue response.

    Raises:
        BackendError: If a PEM field is missing or not a string, the lease is
            not a number, or the certificate does not parse
    """
    data = response.get("data")
    if not isinstance(data, dict):
        raise BackendError("issue response has no data")

    pem: dict[str, str] = {}
    for name in BUNDLE_FIELDS:
        value = data.get(name)
        if not isinstance(value, str):
            raise BackendError(f"issue response field {name!r} missing or not a string")
        pem[name] = value

    try:
        metadata = extract_certificate_metadata(
            deserialize_certificate(pem["certificate"].encode("utf-8"))
        )
    except ValueError as e:
        raise BackendError(f"issued certificate could not be parsed: {e}") from e

    return CertificateBundle(
        certificate=pem["certificate"],
        private_key=pem["private_key"],
        issuing_ca=pem["issuing_ca"],
        lease_seconds=_parse_lease(response.get("lease_duration", 0), "lease_duration"),
        metadata=metadata,
    )


class VaultGateway:
    """Single point of contact with Vault.

    Calls are serialised by a lock, and the client is stamped with the
    holder's current token before each request. Failures are wrapped in
    BackendError and never retried here.
    """

    def __init__(self, client: hvac.Client, credential: CredentialHolder) -> None:
        """Initialize gateway.

        Args:
            client: hvac client used for every request
            credential: Holder of the live token
        """
        self.client = client
        self.credential = credential
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: VaultConfig, credential: CredentialHolder) -> "VaultGateway":
        """Create gateway with an hvac client built from VAULT_* settings."""
        client = hvac.Client(
            url=config.address,
            token=credential.token,
            verify=config.verify,
            cert=config.cert,
            namespace=config.namespace,
        )
        return cls(client, credential)

    def _call(self, description: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            self.client.token = self.credential.token
            try:
                return func(*args, **kwargs)
            except (VaultError, RequestException) as e:
                raise BackendError(f"{description} failed: {e}") from e

    def unwrap(self, token: str) -> TokenSecret | None:
        """Resolve a response-wrapping token into the token it wraps.

        Returns:
            TokenSecret for the wrapped token, or None if token is not a wrapper
        """

        def _unwrap() -> Any:
            try:
                # Vault reads the wrapping token from the header when it is ours.
                if token == self.client.token:
                    return self.client.sys.unwrap()
                return self.client.sys.unwrap(token=token)
            except InvalidPath:
                return None
            except InvalidRequest as e:
                if NOT_A_WRAPPING_TOKEN in str(e):
                    return None
                raise

        response = self._call("unwrap", _unwrap)
        if response is None:
            return None
        return _parse_auth(_require_mapping(response, "unwrap"), "unwrap")

    def lookup_self(self) -> TokenSecret:
        """Read lease details of the token in hand."""
        response = _require_mapping(
            self._call("token lookup", self.client.auth.token.lookup_self), "token lookup"
        )
        data = response.get("data")
        if not isinstance(data, dict):
            raise BackendError("token lookup response has no data")
        token_id = data.get("id")
        return TokenSecret(
            client_token=token_id if isinstance(token_id, str) and token_id else None,
            lease_seconds=_parse_lease(data.get("ttl", 0), "data.ttl"),
            renewable=bool(data.get("renewable", False)),
        )

    def renew_self(self) -> Credential:
        """Extend the lease of the token in hand and record it in the holder.

        The holder is updated before the gateway lock is released, so a
        request queued behind the renewal is sent with the renewed token.

        Returns:
            The renewed live Credential
        """

        def _renew() -> Credential:
            response = self.client.auth.token.renew_self()
            secret = _parse_auth(_require_mapping(response, "token renewal"), "token renewal")
            return self.credential.apply_renewal(secret)

        return self._call("token renewal", _renew)

    def issue(self, request: IssuanceRequest) -> CertificateBundle:
        """Issue a certificate from the request's PKI mount and role."""
        params = request.to_params()
        common_name = params.pop("common_name")
        response = self._call(
            f"issue {request.path}",
            self.client.secrets.pki.generate_certificate,
            name=request.role,
            common_name=common_name,
            extra_params=params,
            mount_point=request.mount,
        )
        return parse_bundle(_require_mapping(response, f"issue {request.path}"))
