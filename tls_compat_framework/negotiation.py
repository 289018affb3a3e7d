"""
Translate an endpoint configuration into tlslite-ng handshake settings

OpenSSL semantics are mapped onto version ranges:
  - an explicit option mask is used as is
  - without a mask, SSLv2 and SSLv3 are disabled unless the capability flag
    enables one of them
  - a pinned family allows exactly its own version, an auto-negotiating
    selector allows everything the effective mask leaves enabled
"""

from tlslite.api import HandshakeSettings
from tlslite.handshakesettings import KNOWN_VERSIONS

from .endpoint import EndpointConfig
from .vocabulary import (
    ProtocolFamily, SecureOption, CapabilityFlag, SSL2_COMPATIBLE_CIPHERS
)


SSL3_VERSION = (3, 0)
TLS1_VERSION = (3, 1)
TLS12_VERSION = (3, 3)
TLS13_VERSION = (3, 4)

PINNED_VERSIONS = {
    ProtocolFamily.SSLV3: SSL3_VERSION,
    ProtocolFamily.TLSV1: TLS1_VERSION,
}

# OpenSSL cipher string -> tlslite-ng (cipherNames, macNames, keyExchangeNames)
CIPHER_STRINGS = {
    SSL2_COMPATIBLE_CIPHERS: (["rc4"], ["md5"], ["rsa"]),
}


class UnsupportedProtocolError(ValueError):
    """The TLS library cannot speak the requested protocol at all"""
    pass


class ProtocolDisabledError(ValueError):
    """The requested protocol is disabled by the endpoint's own options"""
    pass


def effective_secure_options(config: EndpointConfig) -> SecureOption:
    """
    Resolve the option mask the endpoint actually runs with

    Args:
        config: Endpoint configuration

    Returns:
        SecureOption mask with every disabled protocol bit set
    """
    if config.secure_options is not None:
        return config.secure_options

    options = SecureOption.NO_SSLv2 | SecureOption.NO_SSLv3
    if config.capability is CapabilityFlag.ENABLE_SSL2:
        options &= ~SecureOption.NO_SSLv2
    elif config.capability is CapabilityFlag.ENABLE_SSL3:
        options &= ~SecureOption.NO_SSLv3
    return options


def version_range(config: EndpointConfig):
    """
    Compute (minVersion, maxVersion) for the endpoint

    Raises:
        UnsupportedProtocolError: For SSLv2, which tlslite-ng does not implement
        ProtocolDisabledError: When the pinned protocol is disabled
    """
    options = effective_secure_options(config)
    family = config.protocol.family if config.protocol else ProtocolFamily.SSLV23

    if family is ProtocolFamily.SSLV2:
        raise UnsupportedProtocolError("SSLv2 is not supported by tlslite-ng")

    if family is ProtocolFamily.SSLV3 and options & SecureOption.NO_SSLv3:
        raise ProtocolDisabledError("SSLv3 selected but disabled by secure options")

    if family in PINNED_VERSIONS:
        version = PINNED_VERSIONS[family]
        return version, version

    min_version = TLS1_VERSION if options & SecureOption.NO_SSLv3 else SSL3_VERSION
    max_version = TLS12_VERSION if config.ciphers else TLS13_VERSION
    return min_version, max_version


def build_handshake_settings(config: EndpointConfig) -> HandshakeSettings:
    """
    Build validated tlslite-ng settings for the endpoint

    Args:
        config: Endpoint configuration

    Returns:
        HandshakeSettings returned by validate()

    Raises:
        UnsupportedProtocolError, ProtocolDisabledError: See version_range()
        ValueError: Unknown cipher string or settings rejected by tlslite-ng
    """
    min_version, max_version = version_range(config)

    settings = HandshakeSettings()
    settings.minVersion = min_version
    settings.maxVersion = max_version
    settings.versions = sorted((v for v in KNOWN_VERSIONS if min_version <= v <= max_version),
                               reverse=True)

    if config.ciphers:
        if config.ciphers not in CIPHER_STRINGS:
            raise ValueError(f"Unknown cipher string: {config.ciphers}")
        cipher_names, mac_names, key_exchange_names = CIPHER_STRINGS[config.ciphers]
        settings.cipherNames = list(cipher_names)
        settings.macNames = list(mac_names)
        settings.keyExchangeNames = list(key_exchange_names)

    # tlslite-ng derives SSLv3 keys without extended master secret support
    if min_version == SSL3_VERSION:
        settings.useExtendedMasterSecret = False
        settings.requireExtendedMasterSecret = False

    # one connection per trial, session tickets would only race the client's close
    settings.ticket_count = 0

    return settings.validate()
