"""
Protocol and option vocabulary for the handshake compatibility matrix

Every value that may legally appear in an endpoint configuration is defined
here: protocol selectors, secure option bits, capability flags and the
SSLv2 cipher restriction.
"""

from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Iterable, Optional, Tuple


SSL2_COMPATIBLE_CIPHERS = 'RC4-MD5'


class Role(Enum):
    """Which side of the handshake an agent plays"""
    SERVER = "server"
    CLIENT = "client"


class ProtocolFamily(Enum):
    """Major protocol grouping, independent of role suffix"""
    SSLV2 = "SSLv2"
    SSLV3 = "SSLv3"
    TLSV1 = "TLSv1"
    SSLV23 = "SSLv23"  # auto-negotiate family


class RoleSuffix(Enum):
    GENERIC = ""
    SERVER = "server"
    CLIENT = "client"


@dataclass(frozen=True)
class ProtocolSelector:
    """An explicit protocol pin such as ``SSLv3_server_method``"""
    family: ProtocolFamily
    suffix: RoleSuffix = RoleSuffix.GENERIC

    @property
    def method_name(self) -> str:
        if self.suffix is RoleSuffix.GENERIC:
            return f"{self.family.value}_method"
        return f"{self.family.value}_{self.suffix.value}_method"

    @staticmethod
    def parse(method_name: str) -> 'ProtocolSelector':
        """
        Parse an OpenSSL-style method name

        Args:
            method_name: e.g. 'SSLv23_method' or 'TLSv1_client_method'

        Returns:
            ProtocolSelector

        Raises:
            ValueError: If the name does not describe a known selector
        """
        parts = method_name.split('_')
        if len(parts) not in (2, 3) or parts[-1] != 'method':
            raise ValueError(f"Not a protocol method name: {method_name!r}")

        family = ProtocolFamily(parts[0])
        suffix = RoleSuffix(parts[1]) if len(parts) == 3 else RoleSuffix.GENERIC
        if len(parts) == 3 and suffix is RoleSuffix.GENERIC:
            raise ValueError(f"Not a protocol method name: {method_name!r}")

        return ProtocolSelector(family, suffix)

    def __str__(self):
        return self.method_name


class SecureOption(IntFlag):
    """Protocol disable bits, using the OpenSSL SSL_OP_* values"""
    NO_SSLv2 = 0x01000000
    NO_SSLv3 = 0x02000000


class CapabilityFlag(Enum):
    """Launch-time switch that must be set before a legacy protocol is honored"""
    NONE = ""
    ENABLE_SSL2 = "--enable-ssl2"
    ENABLE_SSL3 = "--enable-ssl3"


def family_of(selector: Optional[ProtocolSelector]) -> Optional[ProtocolFamily]:
    return selector.family if selector is not None else None


def is_auto_negotiation(selector: Optional[ProtocolSelector]) -> bool:
    return selector is None or selector.family is ProtocolFamily.SSLV23


def is_ssl2(selector: Optional[ProtocolSelector]) -> bool:
    return family_of(selector) is ProtocolFamily.SSLV2


def is_ssl3(selector: Optional[ProtocolSelector]) -> bool:
    return family_of(selector) is ProtocolFamily.SSLV3


def _selectors(role_suffix: RoleSuffix,
               families: Iterable[ProtocolFamily]) -> Tuple[Optional[ProtocolSelector], ...]:
    selectors = [None]
    for family in families:
        selectors.append(ProtocolSelector(family))
        selectors.append(ProtocolSelector(family, role_suffix))
    return tuple(selectors)


ALL_FAMILIES = (ProtocolFamily.SSLV2, ProtocolFamily.SSLV3,
                ProtocolFamily.TLSV1, ProtocolFamily.SSLV23)


@dataclass(frozen=True)
class Vocabulary:
    """Immutable set of values the configuration generator draws from"""
    capability_flags: Tuple[CapabilityFlag, ...]
    server_selectors: Tuple[Optional[ProtocolSelector], ...]
    client_selectors: Tuple[Optional[ProtocolSelector], ...]
    secure_options: Tuple[Optional[SecureOption], ...]

    @staticmethod
    def default() -> 'Vocabulary':
        return Vocabulary.restricted(ALL_FAMILIES)

    @staticmethod
    def restricted(families: Iterable[ProtocolFamily]) -> 'Vocabulary':
        """
        Build a vocabulary whose explicit selectors only name the given families

        The unspecified selector is always part of the vocabulary.

        Args:
            families: Protocol families to keep, in any order

        Returns:
            Vocabulary with selectors in canonical family order
        """
        wanted = set(families)
        ordered = [f for f in ALL_FAMILIES if f in wanted]

        return Vocabulary(
            capability_flags=(CapabilityFlag.NONE,
                              CapabilityFlag.ENABLE_SSL2,
                              CapabilityFlag.ENABLE_SSL3),
            server_selectors=_selectors(RoleSuffix.SERVER, ordered),
            client_selectors=_selectors(RoleSuffix.CLIENT, ordered),
            secure_options=(None,
                            SecureOption(0),
                            SecureOption.NO_SSLv2,
                            SecureOption.NO_SSLv3,
                            SecureOption.NO_SSLv2 | SecureOption.NO_SSLv3)
        )

    def selectors_for(self, role: Role) -> Tuple[Optional[ProtocolSelector], ...]:
        if role is Role.SERVER:
            return self.server_selectors
        return self.client_selectors
