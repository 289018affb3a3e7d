"""
Configuration generator

Produces every internally consistent endpoint configuration for a role.
"""

from typing import List, Optional

from .endpoint import EndpointConfig
from .vocabulary import (
    Vocabulary, Role, ProtocolSelector, SecureOption, CapabilityFlag,
    SSL2_COMPATIBLE_CIPHERS, is_ssl2, is_ssl3
)


def setup_makes_sense(capability: CapabilityFlag,
                      protocol: Optional[ProtocolSelector],
                      secure_options: Optional[SecureOption]) -> bool:
    """
    Check that a config does not pin a legacy protocol it cannot enable itself

    A legacy selector needs its capability flag and must not be disabled by
    the config's own option mask.
    """
    options = secure_options or SecureOption(0)

    if is_ssl2(protocol):
        if options & SecureOption.NO_SSLv2 or capability is not CapabilityFlag.ENABLE_SSL2:
            return False

    if is_ssl3(protocol):
        if options & SecureOption.NO_SSLv3 or capability is not CapabilityFlag.ENABLE_SSL3:
            return False

    return True


def generate_endpoint_configs(vocabulary: Vocabulary, role: Role) -> List[EndpointConfig]:
    """
    Generate all sensible configurations for a role

    Every SSLv2 configuration is followed by a copy restricted to
    SSL2_COMPATIBLE_CIPHERS, since SSLv2 cannot negotiate with the default
    cipher list.

    Args:
        vocabulary: Values to draw from
        role: Role.SERVER or Role.CLIENT

    Returns:
        List of EndpointConfig in enumeration order
    """
    configs = []

    for capability in vocabulary.capability_flags:
        for protocol in vocabulary.selectors_for(role):
            for secure_options in vocabulary.secure_options:
                if not setup_makes_sense(capability, protocol, secure_options):
                    continue

                config = EndpointConfig(
                    role=role,
                    protocol=protocol,
                    secure_options=secure_options,
                    capability=capability
                )
                configs.append(config)

                if is_ssl2(protocol):
                    configs.append(config.with_ciphers(SSL2_COMPATIBLE_CIPHERS))

    return configs
