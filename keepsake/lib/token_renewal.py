"""Background cycle that keeps the Vault token alive."""

import time
from collections.abc import Callable

from .credential import CredentialHolder
from .lease_clock import renewal_delay
from .logging_config import LOGGER
from .vault_gateway import VaultGateway


class TokenRenewalCycle:
    """Sleeps 90% of the current lease, renews, and repeats with the new lease.

    Renewal failures propagate to the caller. A zero lease means the token
    does not expire, and the cycle returns instead of spinning.
    """

    name = "token-renewal"

    def __init__(
        self,
        gateway: VaultGateway,
        credential: CredentialHolder,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.gateway = gateway
        self.credential = credential
        self._sleep = sleep

    def renew_once(self) -> int:
        """Renew the token; the gateway records the granted lease in the holder.

        Returns:
            The new lease duration in seconds
        """
        credential = self.gateway.renew_self()
        LOGGER.info("Renewed token", extra={"lease_seconds": credential.lease_seconds})
        return credential.lease_seconds

    def run(self) -> None:
        lease = self.credential.get().lease_seconds
        while lease > 0:
            delay = renewal_delay(lease)
            LOGGER.debug("Token renewal armed", extra={"delay_seconds": delay})
            self._sleep(delay)
            lease = self.renew_once()
        LOGGER.warning("Token has no lease, not renewing", extra={"lease_seconds": lease})
