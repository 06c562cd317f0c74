"""Renewal scheduling derived from Vault lease durations."""

RENEWAL_FRACTION = 0.9


def renewal_delay(lease_seconds: float) -> float:
    """Return seconds to wait before renewing a lease of the given length.

    Renewing at 90% of the granted lease leaves a 10% margin for clock skew
    and request latency. A zero lease yields a zero delay; callers must not
    loop on it.

    Raises:
        ValueError: If lease_seconds is negative
    """
    if lease_seconds < 0:
        raise ValueError(f"lease duration must not be negative: {lease_seconds}")
    return lease_seconds * RENEWAL_FRACTION
