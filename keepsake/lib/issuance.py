"""Certificate issuance cycle: issue, persist, run hook, sleep, repeat."""

import subprocess
import time
from collections.abc import Callable
from pathlib import Path

from .errors import HookError, PersistenceError
from .lease_clock import renewal_delay
from .logging_config import LOGGER
from .models import CertificateBundle, IssuanceRequest, OutputPaths
from .vault_gateway import VaultGateway

SHELL = "/bin/bash"
FILE_MODE = 0o640


def write_artifact(path: Path, content: str) -> None:
    """Overwrite path with content, creating it with FILE_MODE if missing."""
    path.touch(mode=FILE_MODE, exist_ok=True)
    path.write_bytes(content.encode("utf-8"))


def persist_bundle(bundle: CertificateBundle, outputs: OutputPaths) -> None:
    """Write certificate, CA and private key, in that order.

    Stops at the first failure, so later files keep their previous content.

    Raises:
        PersistenceError: If any write fails
    """
    for path, content in (
        (outputs.cert_file, bundle.certificate),
        (outputs.ca_file, bundle.issuing_ca),
        (outputs.key_file, bundle.private_key),
    ):
        try:
            write_artifact(path, content)
        except OSError as e:
            raise PersistenceError(path, e) from e
        LOGGER.debug("Wrote artifact", extra={"file": str(path)})


def run_hook(command: str) -> None:
    """Run the operator hook through the shell and wait for it to exit.

    Raises:
        HookError: If the command cannot be started or exits non-zero
    """
    try:
        subprocess.run([SHELL, "-c", command], check=True)
    except subprocess.CalledProcessError as e:
        raise HookError(command, e.returncode, f"exit status {e.returncode}") from e
    except OSError as e:
        raise HookError(command, None, str(e)) from e


class CertificateIssuanceCycle:
    """Issues the configured certificate forever.

    The first iteration runs immediately. Each following one waits 90% of the
    lease granted with the previous bundle. A bundle without a lease is not
    auto-renewed: the cycle returns after writing it.
    """

    name = "certificate-issuance"

    def __init__(
        self,
        gateway: VaultGateway,
        request: IssuanceRequest,
        outputs: OutputPaths,
        hook_command: str = "",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.gateway = gateway
        self.request = request
        self.outputs = outputs
        self.hook_command = hook_command
        self._sleep = sleep

    def issue_once(self) -> CertificateBundle:
        """Issue, persist and run the hook once.

        Returns:
            The bundle written to disk
        """
        bundle = self.gateway.issue(self.request)
        metadata = bundle.metadata or {}
        LOGGER.info(
            "Issued certificate",
            extra={
                "common_name": metadata.get("commonName", self.request.common_name),
                "serial_number": metadata.get("serialNumber"),
                "not_after": metadata.get("notAfter"),
                "lease_seconds": bundle.lease_seconds,
            },
        )

        persist_bundle(bundle, self.outputs)

        if self.hook_command:
            LOGGER.info("Running hook", extra={"cmd": self.hook_command})
            run_hook(self.hook_command)

        return bundle

    def run(self) -> None:
        while True:
            bundle = self.issue_once()
            if bundle.lease_seconds <= 0:
                LOGGER.warning(
                    "Certificate has no lease, not renewing",
                    extra={"lease_seconds": bundle.lease_seconds},
                )
                return
            delay = renewal_delay(bundle.lease_seconds)
            LOGGER.info("Certificate renewal armed", extra={"delay_seconds": delay})
            self._sleep(delay)
