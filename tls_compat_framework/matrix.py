"""
Test matrix builder
"""

from dataclasses import dataclass
from typing import Dict, List

from .endpoint import EndpointConfig
from .generator import generate_endpoint_configs
from .predictor import predict
from .vocabulary import Vocabulary, Role


@dataclass(frozen=True)
class TestCase:
    """One server/client pairing and its predicted outcome"""
    __test__ = False  # not a pytest class

    index: int
    server: EndpointConfig
    client: EndpointConfig
    expected_success: bool

    def to_dict(self) -> Dict:
        return {
            'index': self.index,
            'server': self.server.to_dict(),
            'client': self.client.to_dict(),
            'expected_success': self.expected_success
        }

    def __repr__(self):
        return f"TestCase(#{self.index}, expected_success={self.expected_success})"


def build_matrix(servers: List[EndpointConfig], clients: List[EndpointConfig]) -> List[TestCase]:
    """
    Cross-join server and client configs, server outer and client inner

    Incompatible pairs are kept with expected_success=False.
    """
    cases = []
    for server in servers:
        for client in clients:
            cases.append(TestCase(
                index=len(cases),
                server=server,
                client=client,
                expected_success=predict(server, client)
            ))
    return cases


def build_default_matrix(vocabulary: Vocabulary) -> List[TestCase]:
    servers = generate_endpoint_configs(vocabulary, Role.SERVER)
    clients = generate_endpoint_configs(vocabulary, Role.CLIENT)
    return build_matrix(servers, clients)


def summarize_matrix(cases: List[TestCase]) -> Dict[str, int]:
    """
    Count distinct configs and predicted outcomes in a matrix

    Returns:
        Dictionary with 'servers', 'clients', 'cases', 'expected_success'
        and 'expected_failure' counts
    """
    servers = {case.server for case in cases}
    clients = {case.client for case in cases}
    expected_success = sum(1 for c in cases if c.expected_success)

    return {
        'servers': len(servers),
        'clients': len(clients),
        'cases': len(cases),
        'expected_success': expected_success,
        'expected_failure': len(cases) - expected_success
    }
