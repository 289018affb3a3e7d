from tls_compat_framework.generator import generate_endpoint_configs
from tls_compat_framework.matrix import build_matrix, build_default_matrix, summarize_matrix
from tls_compat_framework.predictor import predict
from tls_compat_framework.vocabulary import Vocabulary, Role, ProtocolFamily

from helpers import server, client, SSL3, TLS1


def test_matrix_is_full_cartesian_product():
    vocabulary = Vocabulary.default()
    servers = generate_endpoint_configs(vocabulary, Role.SERVER)
    clients = generate_endpoint_configs(vocabulary, Role.CLIENT)

    cases = build_matrix(servers, clients)

    assert len(cases) == len(servers) * len(clients)
    assert any(not c.expected_success for c in cases)
    assert any(c.expected_success for c in cases)


def test_matrix_order_is_server_outer_client_inner():
    servers = [server(), server(TLS1)]
    clients = [client(), client(SSL3), client(TLS1)]

    cases = build_matrix(servers, clients)

    assert [(c.server, c.client) for c in cases] == [(s, c) for s in servers for c in clients]
    assert [c.index for c in cases] == list(range(6))


def test_expected_success_comes_from_predictor():
    cases = build_default_matrix(Vocabulary.restricted([ProtocolFamily.SSLV3, ProtocolFamily.TLSV1]))

    for case in cases:
        assert case.expected_success == predict(case.server, case.client)


def test_summarize_matrix():
    cases = build_matrix([server(), server(TLS1)], [client(), client(SSL3)])

    summary = summarize_matrix(cases)

    assert summary == {
        'servers': 2,
        'clients': 2,
        'cases': 4,
        'expected_success': 2,
        'expected_failure': 2
    }


def test_case_to_dict():
    case = build_matrix([server(TLS1)], [client()])[0]

    data = case.to_dict()

    assert data['index'] == 0
    assert data['server']['protocol'] == 'TLSv1_method'
    assert data['client']['secure_options'] is None
    assert data['expected_success'] is True
