from pathlib import Path

import pytest

from tls_compat_framework.config import HarnessConfig, PACKAGE_DIR
from tls_compat_framework.vocabulary import ProtocolFamily, Vocabulary


ROOT = Path(__file__).resolve().parents[1]


def test_defaults_without_file():
    config = HarnessConfig()

    assert config.get_network_settings() == {'host': '127.0.0.1', 'port': 4433}
    assert config.get_test_execution_settings()['trial_timeout'] == 30
    assert config.get_vocabulary() == Vocabulary.restricted(
        [ProtocolFamily.SSLV3, ProtocolFamily.TLSV1, ProtocolFamily.SSLV23]
    )
    assert config.get_certificate_paths()['cert'] == PACKAGE_DIR / 'fixtures' / 'agent.crt'


def test_missing_file_raises():
    with pytest.raises(FileNotFoundError):
        HarnessConfig('does-not-exist.yaml')


def test_file_overrides_are_merged(tmp_path):
    path = tmp_path / 'harness.yaml'
    path.write_text(
        "network:\n"
        "  port: 5555\n"
        "certificates:\n"
        "  fixtures_dir: certs\n"
        "vocabulary:\n"
        "  protocol_families: [TLSv1]\n"
    )

    config = HarnessConfig(str(path))

    assert config.get_network_settings() == {'host': '127.0.0.1', 'port': 5555}
    assert config.get_certificate_paths() == {
        'cert': tmp_path / 'certs' / 'agent.crt',
        'key': tmp_path / 'certs' / 'agent.key'
    }
    assert config.get_vocabulary() == Vocabulary.restricted([ProtocolFamily.TLSV1])
    assert config.get_test_execution_settings()['handshake_timeout'] == 10


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / 'empty.yaml'
    path.write_text("")

    assert HarnessConfig(str(path)).get_network_settings()['port'] == 4433


def test_unknown_family_is_rejected(tmp_path):
    path = tmp_path / 'bad.yaml'
    path.write_text("vocabulary:\n  protocol_families: [TLSv9]\n")

    with pytest.raises(ValueError):
        HarnessConfig(str(path)).get_vocabulary()


def test_shipped_config_points_at_package_fixtures():
    config = HarnessConfig(str(ROOT / 'config.yaml'))

    certs = config.get_certificate_paths()
    assert certs['cert'].exists()
    assert certs['key'].exists()
    assert config.get_reporting_settings()['template'].exists()
    assert ProtocolFamily.SSLV2 not in {s.family for s in config.get_vocabulary().server_selectors if s}


def test_default_vocabulary_leaves_out_ssl2():
    vocabulary = HarnessConfig().get_vocabulary()

    assert ProtocolFamily.SSLV2 not in {selector.family for selector in vocabulary.server_selectors
                                        if selector is not None}
    assert ProtocolFamily.SSLV2 in {selector.family for selector in Vocabulary.default().server_selectors
                                    if selector is not None}
