"""
Endpoint configuration and its invocation record

An EndpointConfig fully describes one side of a handshake trial. The agent
process receives it as a compact JSON record on its command line; the
capability flag travels separately in the launch environment.
"""

import json
from dataclasses import dataclass, replace
from typing import Dict, Any, List, Optional

from .vocabulary import (
    Role, ProtocolSelector, SecureOption, CapabilityFlag
)


CAPABILITY_ENV_VAR = 'TLS_COMPAT_CAPABILITY'

SECURE_OPTION_NAMES = {
    'SSL_OP_NO_SSLv2': SecureOption.NO_SSLv2,
    'SSL_OP_NO_SSLv3': SecureOption.NO_SSLv3,
}

RECORD_KEYS = ('role', 'protocol', 'secure_options', 'ciphers')


class ConfigDecodeError(ValueError):
    """Raised when an invocation record cannot be turned back into a config"""
    pass


@dataclass(frozen=True)
class EndpointConfig:
    """One side (server or client) of a handshake trial"""
    role: Role
    protocol: Optional[ProtocolSelector] = None
    secure_options: Optional[SecureOption] = None
    capability: CapabilityFlag = CapabilityFlag.NONE
    ciphers: Optional[str] = None

    def with_ciphers(self, ciphers: Optional[str]) -> 'EndpointConfig':
        return replace(self, ciphers=ciphers)

    def with_capability(self, capability: CapabilityFlag) -> 'EndpointConfig':
        return replace(self, capability=capability)

    def describe(self) -> str:
        """Short one-line description used in console output and reports"""
        protocol = self.protocol.method_name if self.protocol else '-'
        return (f"{self.role.value}(protocol={protocol}, "
                f"options={secure_options_to_string(self.secure_options) or '-'}, "
                f"flag={self.capability.value or '-'}, "
                f"ciphers={self.ciphers or '-'})")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON reports"""
        return {
            'role': self.role.value,
            'protocol': self.protocol.method_name if self.protocol else None,
            'secure_options': secure_options_to_names(self.secure_options),
            'capability': self.capability.value or None,
            'ciphers': self.ciphers
        }


def secure_options_to_names(options: Optional[SecureOption]) -> Optional[List[str]]:
    """Encode a mask as named bits; None stays None, the zero mask is []"""
    if options is None:
        return None
    return [name for name, bit in SECURE_OPTION_NAMES.items() if options & bit]


def secure_options_to_string(options: Optional[SecureOption]) -> str:
    """Render a mask the way OpenSSL users write it, '0' for the zero mask"""
    names = secure_options_to_names(options)
    if names is None:
        return ''
    if not names:
        return '0'
    return '|'.join(names)


def secure_options_from_names(names: Optional[List[str]]) -> Optional[SecureOption]:
    if names is None:
        return None
    if not isinstance(names, list):
        raise ConfigDecodeError(f"secure_options must be a list or null, got {names!r}")

    options = SecureOption(0)
    for name in names:
        if not isinstance(name, str) or name not in SECURE_OPTION_NAMES:
            raise ConfigDecodeError(f"Unknown secure option: {name!r}")
        options |= SECURE_OPTION_NAMES[name]
    return options


def encode_record(config: EndpointConfig) -> str:
    """
    Serialize a config into the agent invocation record

    The capability flag is not part of the record, see capability_environment().
    """
    record = config.to_dict()
    del record['capability']
    return json.dumps(record, separators=(',', ':'), sort_keys=True)


def decode_record(text: str, capability: CapabilityFlag = CapabilityFlag.NONE) -> EndpointConfig:
    """
    Parse and validate an agent invocation record

    Args:
        text: JSON record produced by encode_record()
        capability: Capability flag taken from the launch environment

    Returns:
        EndpointConfig

    Raises:
        ConfigDecodeError: If the record is malformed in any way
    """
    try:
        record = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigDecodeError(f"Invocation record is not valid JSON: {e}") from e

    if not isinstance(record, dict):
        raise ConfigDecodeError("Invocation record must be a JSON object")

    unknown = set(record) - set(RECORD_KEYS)
    missing = set(RECORD_KEYS) - set(record)
    if unknown or missing:
        raise ConfigDecodeError(
            f"Invocation record keys mismatch (unknown={sorted(unknown)}, missing={sorted(missing)})"
        )

    try:
        role = Role(record['role'])
        protocol = record['protocol']
        protocol = ProtocolSelector.parse(protocol) if protocol else None
    except (ValueError, AttributeError) as e:
        raise ConfigDecodeError(str(e)) from e

    ciphers = record['ciphers']
    if ciphers is not None and not isinstance(ciphers, str):
        raise ConfigDecodeError(f"ciphers must be a string or null, got {ciphers!r}")

    return EndpointConfig(
        role=role,
        protocol=protocol,
        secure_options=secure_options_from_names(record['secure_options']),
        capability=capability,
        ciphers=ciphers or None
    )


def capability_environment(config: EndpointConfig, base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Launch environment for an agent, carrying the capability flag"""
    env = dict(base or {})
    env.pop(CAPABILITY_ENV_VAR, None)
    if config.capability is not CapabilityFlag.NONE:
        env[CAPABILITY_ENV_VAR] = config.capability.value
    return env


def capability_from_environment(env: Dict[str, str]) -> CapabilityFlag:
    try:
        return CapabilityFlag(env.get(CAPABILITY_ENV_VAR, ''))
    except ValueError as e:
        raise ConfigDecodeError(f"Unknown capability flag in {CAPABILITY_ENV_VAR}: {e}") from e
