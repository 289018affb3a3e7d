from tls_compat_framework.endpoint import EndpointConfig
from tls_compat_framework.vocabulary import (
    Role, ProtocolFamily, ProtocolSelector, RoleSuffix, CapabilityFlag
)


SSL2 = ProtocolSelector(ProtocolFamily.SSLV2)
SSL3 = ProtocolSelector(ProtocolFamily.SSLV3)
TLS1 = ProtocolSelector(ProtocolFamily.TLSV1)
SSL23 = ProtocolSelector(ProtocolFamily.SSLV23)
SSL3_SERVER = ProtocolSelector(ProtocolFamily.SSLV3, RoleSuffix.SERVER)
SSL3_CLIENT = ProtocolSelector(ProtocolFamily.SSLV3, RoleSuffix.CLIENT)


def server(protocol=None, options=None, capability=CapabilityFlag.NONE, ciphers=None):
    return EndpointConfig(Role.SERVER, protocol, options, capability, ciphers)


def client(protocol=None, options=None, capability=CapabilityFlag.NONE, ciphers=None):
    return EndpointConfig(Role.CLIENT, protocol, options, capability, ciphers)
