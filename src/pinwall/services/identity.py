"""Client identity fingerprinting.

An identity is derived from the network address and client-agent string of
the caller. Its digest is the per-client key used for the daily upload limit
and for binding upload keys to the client that requested them.
"""

import hashlib
from dataclasses import dataclass

_SEPARATOR = "\x1f"


@dataclass(frozen=True)
class Identity:
    """Fingerprinted client identity."""

    network_address: str
    client_agent: str
    digest: str

    @property
    def short(self) -> str:
        """Digest prefix used in storage filenames and logs."""
        return self.digest[:12]


def fingerprint(network_address: str, client_agent: str | None) -> Identity:
    """Derive the identity of a client.

    Pure and deterministic: the same (address, agent) pair always yields the
    same digest.

    Args:
        network_address: Client IP address
        client_agent: User-Agent header value (None treated as empty)

    Returns:
        Identity with SHA-256 hex digest of the normalized pair
    """
    address = (network_address or "").strip()
    agent = (client_agent or "").strip()
    digest = hashlib.sha256(f"{address}{_SEPARATOR}{agent}".encode("utf-8")).hexdigest()
    return Identity(network_address=address, client_agent=agent, digest=digest)
