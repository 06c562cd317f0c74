"""Startup resolution of the supplied Vault token into the live credential."""

from .credential import CredentialHolder
from .logging_config import LOGGER
from .models import Credential
from .vault_gateway import VaultGateway


def resolve_credential(gateway: VaultGateway, holder: CredentialHolder, token: str) -> Credential:
    """Turn the supplied token, possibly a response-wrapping token, into the live credential.

    1. Try to unwrap the token
    2. If it was a wrapper, adopt the wrapped client token and its lease
    3. Otherwise keep the token and read its lease with lookup-self
    4. Warn if a token with a lease cannot be renewed; renewal will fail
       when the first renewal comes due

    Any backend failure propagates; the agent cannot start without a token.

    Args:
        gateway: Vault gateway bound to holder
        holder: Credential holder updated in place
        token: Token read from the environment

    Returns:
        The credential now live in holder
    """
    secret = gateway.unwrap(token)
    if secret is not None and secret.client_token:
        credential = Credential(token=secret.client_token, lease_seconds=secret.lease_seconds)
        LOGGER.info("Unwrapped token", extra={"lease_seconds": credential.lease_seconds})
    else:
        secret = gateway.lookup_self()
        credential = Credential(token=token, lease_seconds=secret.lease_seconds)
        LOGGER.info("Token is not wrapped", extra={"lease_seconds": credential.lease_seconds})

    if credential.lease_seconds > 0 and not secret.renewable:
        LOGGER.warning(
            "Token is not renewable", extra={"lease_seconds": credential.lease_seconds}
        )

    holder.replace(credential)
    return credential
