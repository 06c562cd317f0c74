"""Tests for resolve_credential."""

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from conftest import INITIAL_TOKEN, RecordingSleep, StopCycle

from keepsake.lib.bootstrap import resolve_credential
from keepsake.lib.credential import CredentialHolder
from keepsake.lib.errors import BackendError
from keepsake.lib.models import TokenSecret
from keepsake.lib.token_renewal import TokenRenewalCycle


@pytest.fixture
def mock_gateway() -> MagicMock:
    """Return mocked gateway."""
    return MagicMock()


def test_wrapped_token_adopts_client_token(
    mock_gateway: MagicMock, holder: CredentialHolder
) -> None:
    """Unwrapped client token replaces the supplied token."""
    mock_gateway.unwrap.return_value = TokenSecret(client_token="s.real", lease_seconds=3600)

    credential = resolve_credential(mock_gateway, holder, INITIAL_TOKEN)

    assert credential.token == "s.real"
    assert credential.lease_seconds == 3600
    assert holder.get() == credential
    mock_gateway.lookup_self.assert_not_called()


def test_unwrapped_token_keeps_original_and_looks_up_lease(
    mock_gateway: MagicMock, holder: CredentialHolder
) -> None:
    mock_gateway.unwrap.return_value = None
    mock_gateway.lookup_self.return_value = TokenSecret(
        client_token=INITIAL_TOKEN, lease_seconds=1800
    )

    credential = resolve_credential(mock_gateway, holder, INITIAL_TOKEN)

    assert credential.token == INITIAL_TOKEN
    assert credential.lease_seconds == 1800
    assert holder.get() == credential


def test_unwrap_failure_propagates(mock_gateway: MagicMock, holder: CredentialHolder) -> None:
    mock_gateway.unwrap.side_effect = BackendError("unwrap failed: permission denied")

    with pytest.raises(BackendError):
        resolve_credential(mock_gateway, holder, INITIAL_TOKEN)

    assert holder.token == INITIAL_TOKEN


def test_lookup_failure_propagates(mock_gateway: MagicMock, holder: CredentialHolder) -> None:
    mock_gateway.unwrap.return_value = None
    mock_gateway.lookup_self.side_effect = BackendError("token lookup failed")

    with pytest.raises(BackendError):
        resolve_credential(mock_gateway, holder, INITIAL_TOKEN)


def test_wrapped_lease_schedules_first_renewal(
    mock_gateway: MagicMock, holder: CredentialHolder
) -> None:
    """A wrapped token with a one hour lease is first renewed after 3240 seconds."""
    mock_gateway.unwrap.return_value = TokenSecret(client_token="s.real", lease_seconds=3600)
    resolve_credential(mock_gateway, holder, INITIAL_TOKEN)
    sleep = RecordingSleep(limit=1)

    with pytest.raises(StopCycle):
        TokenRenewalCycle(mock_gateway, holder, sleep=sleep).run()

    assert sleep.delays == [pytest.approx(3240.0)]
    mock_gateway.renew_self.assert_not_called()


class TestRenewableWarning:
    """Tests for the warning about tokens that cannot be renewed."""

    @pytest.fixture
    def mock_logger(self) -> Generator[MagicMock]:
        with patch("keepsake.lib.bootstrap.LOGGER") as mock:
            yield mock

    def test_non_renewable_wrapped_token_warns(
        self, mock_gateway: MagicMock, holder: CredentialHolder, mock_logger: MagicMock
    ) -> None:
        mock_gateway.unwrap.return_value = TokenSecret(
            client_token="s.real", lease_seconds=3600, renewable=False
        )

        resolve_credential(mock_gateway, holder, INITIAL_TOKEN)

        mock_logger.warning.assert_called_once_with(
            "Token is not renewable", extra={"lease_seconds": 3600}
        )

    def test_non_renewable_looked_up_token_warns(
        self, mock_gateway: MagicMock, holder: CredentialHolder, mock_logger: MagicMock
    ) -> None:
        mock_gateway.unwrap.return_value = None
        mock_gateway.lookup_self.return_value = TokenSecret(
            client_token=INITIAL_TOKEN, lease_seconds=1800, renewable=False
        )

        resolve_credential(mock_gateway, holder, INITIAL_TOKEN)

        mock_logger.warning.assert_called_once()

    def test_renewable_token_does_not_warn(
        self, mock_gateway: MagicMock, holder: CredentialHolder, mock_logger: MagicMock
    ) -> None:
        mock_gateway.unwrap.return_value = TokenSecret(
            client_token="s.real", lease_seconds=3600, renewable=True
        )

        resolve_credential(mock_gateway, holder, INITIAL_TOKEN)

        mock_logger.warning.assert_not_called()

    def test_non_expiring_token_does_not_warn(
        self, mock_gateway: MagicMock, holder: CredentialHolder, mock_logger: MagicMock
    ) -> None:
        """A root token has no lease, so there is nothing to renew."""
        mock_gateway.unwrap.return_value = None
        mock_gateway.lookup_self.return_value = TokenSecret(
            client_token=INITIAL_TOKEN, lease_seconds=0, renewable=False
        )

        resolve_credential(mock_gateway, holder, INITIAL_TOKEN)

        mock_logger.warning.assert_not_called()
