"""Thread-safe holder for the live Vault credential."""

import threading

from .models import Credential, TokenSecret


class CredentialHolder:
    """Guards the single live Credential shared by both renewal cycles.

    The token renewal thread writes it and the issuance thread reads it
    through the gateway. Credential values are immutable and swapped under
    the lock, so readers see either the old or the new value, never a mix.
    """

    def __init__(self, credential: Credential) -> None:
        self._lock = threading.Lock()
        self._credential = credential

    def get(self) -> Credential:
        with self._lock:
            return self._credential

    @property
    def token(self) -> str:
        return self.get().token

    def replace(self, credential: Credential) -> None:
        with self._lock:
            self._credential = credential

    def apply_renewal(self, secret: TokenSecret) -> Credential:
        """Record a renewal result, keeping the current token if none was returned."""
        with self._lock:
            self._credential = Credential(
                token=secret.client_token or self._credential.token,
                lease_seconds=secret.lease_seconds,
            )
            return self._credential
