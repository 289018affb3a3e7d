"""
Compatibility predictor

Encodes the externally observable negotiation contract of the SSL/TLS
protocol family: an explicit version pin must match the peer's family, must
not be blocked by the peer's disablement policy, and SSLv2 additionally
requires a compatible cipher list on both sides.
"""

from dataclasses import dataclass
from typing import Optional

from .endpoint import EndpointConfig
from .vocabulary import (
    ProtocolSelector, SecureOption, CapabilityFlag, SSL2_COMPATIBLE_CIPHERS,
    family_of, is_auto_negotiation, is_ssl2, is_ssl3
)


@dataclass(frozen=True)
class Verdict:
    """Predicted outcome of a trial, with the first failing rule if any"""
    compatible: bool
    reason: Optional[str] = None

    def __bool__(self):
        return self.compatible


COMPATIBLE = Verdict(True)


def protocols_compatible(server_protocol: Optional[ProtocolSelector],
                         client_protocol: Optional[ProtocolSelector]) -> bool:
    if is_auto_negotiation(server_protocol) or is_auto_negotiation(client_protocol):
        return True

    # role suffix is ignored
    return family_of(server_protocol) is family_of(client_protocol)


def protocol_allowed_by_peer(protocol: Optional[ProtocolSelector],
                             peer_options: Optional[SecureOption],
                             peer_capability: CapabilityFlag) -> bool:
    """
    Check a selector against the peer's option mask and capability flag

    With no explicit mask the peer only accepts a legacy protocol its
    capability flag enables; with an explicit mask only the disable bits
    count.
    """
    if peer_options is None:
        if is_ssl2(protocol) and peer_capability is not CapabilityFlag.ENABLE_SSL2:
            return False
        if is_ssl3(protocol) and peer_capability is not CapabilityFlag.ENABLE_SSL3:
            return False
    else:
        if peer_options & SecureOption.NO_SSLv2 and is_ssl2(protocol):
            return False
        if peer_options & SecureOption.NO_SSLv3 and is_ssl3(protocol):
            return False

    return True


def check_compatibility(server: EndpointConfig, client: EndpointConfig) -> Verdict:
    """
    Decide whether a handshake between server and client should succeed

    Args:
        server: Server-side configuration
        client: Client-side configuration

    Returns:
        Verdict; reason names the first rule that failed
    """
    if not protocols_compatible(server.protocol, client.protocol):
        return Verdict(False, f"protocol families differ: server {server.protocol}, "
                              f"client {client.protocol}")

    if not protocol_allowed_by_peer(server.protocol, client.secure_options, client.capability):
        return Verdict(False, f"server protocol {server.protocol} not allowed by client options")

    if not protocol_allowed_by_peer(client.protocol, server.secure_options, server.capability):
        return Verdict(False, f"client protocol {client.protocol} not allowed by server options")

    if is_ssl2(server.protocol) or is_ssl2(client.protocol):
        if server.ciphers != SSL2_COMPATIBLE_CIPHERS or client.ciphers != SSL2_COMPATIBLE_CIPHERS:
            return Verdict(False, f"SSLv2 requires {SSL2_COMPATIBLE_CIPHERS} ciphers on both sides")

    return COMPATIBLE


def predict(server: EndpointConfig, client: EndpointConfig) -> bool:
    """Return True when the handshake is expected to succeed"""
    return check_compatibility(server, client).compatible
