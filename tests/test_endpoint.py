import json

import pytest

from tls_compat_framework.endpoint import (
    ConfigDecodeError, CAPABILITY_ENV_VAR, encode_record, decode_record,
    secure_options_to_string, capability_environment, capability_from_environment
)
from tls_compat_framework.vocabulary import (
    Role, SecureOption, CapabilityFlag, SSL2_COMPATIBLE_CIPHERS
)

from helpers import server, client, SSL2, SSL3_CLIENT


def test_record_leaves_capability_out_of_band():
    config = server(SSL2, SecureOption.NO_SSLv3, CapabilityFlag.ENABLE_SSL2, SSL2_COMPATIBLE_CIPHERS)

    record = json.loads(encode_record(config))

    assert record == {
        'role': 'server',
        'protocol': 'SSLv2_method',
        'secure_options': ['SSL_OP_NO_SSLv3'],
        'ciphers': 'RC4-MD5'
    }
    assert decode_record(encode_record(config), CapabilityFlag.ENABLE_SSL2) == config


def test_unspecified_and_zero_masks_stay_distinct():
    unspecified = decode_record(encode_record(client()))
    zero = decode_record(encode_record(client(options=SecureOption(0))))

    assert unspecified.secure_options is None
    assert zero.secure_options == SecureOption(0)
    assert zero.secure_options is not None


def test_decode_record_fills_defaults_for_empty_values():
    config = decode_record('{"role":"client","protocol":"","secure_options":null,"ciphers":""}')

    assert config.role is Role.CLIENT
    assert config.protocol is None
    assert config.ciphers is None
    assert config.capability is CapabilityFlag.NONE


@pytest.mark.parametrize('text', [
    'not json',
    '[]',
    '{"role":"client","protocol":null,"secure_options":null}',
    '{"role":"client","protocol":null,"secure_options":null,"ciphers":null,"extra":1}',
    '{"role":"peer","protocol":null,"secure_options":null,"ciphers":null}',
    '{"role":"client","protocol":"SSLv9_method","secure_options":null,"ciphers":null}',
    '{"role":"client","protocol":null,"secure_options":["SSL_OP_NO_TLSv1"],"ciphers":null}',
    '{"role":"client","protocol":null,"secure_options":"SSL_OP_NO_SSLv2","ciphers":null}',
    '{"role":"client","protocol":null,"secure_options":[[]],"ciphers":null}',
    '{"role":"client","protocol":null,"secure_options":[16777216],"ciphers":null}',
    '{"role":"client","protocol":null,"secure_options":null,"ciphers":5}',
])
def test_decode_record_fails_fast_on_malformed_input(text):
    with pytest.raises(ConfigDecodeError):
        decode_record(text)


def test_secure_options_to_string():
    assert secure_options_to_string(None) == ''
    assert secure_options_to_string(SecureOption(0)) == '0'
    assert secure_options_to_string(SecureOption.NO_SSLv3) == 'SSL_OP_NO_SSLv3'
    assert secure_options_to_string(SecureOption.NO_SSLv2 | SecureOption.NO_SSLv3) == \
        'SSL_OP_NO_SSLv2|SSL_OP_NO_SSLv3'


def test_capability_environment():
    base = {'PATH': '/bin', CAPABILITY_ENV_VAR: '--enable-ssl2'}

    env = capability_environment(client(SSL3_CLIENT, capability=CapabilityFlag.ENABLE_SSL3), base)
    assert env[CAPABILITY_ENV_VAR] == '--enable-ssl3'
    assert env['PATH'] == '/bin'
    assert capability_from_environment(env) is CapabilityFlag.ENABLE_SSL3

    env = capability_environment(client(), base)
    assert CAPABILITY_ENV_VAR not in env
    assert capability_from_environment(env) is CapabilityFlag.NONE
    assert base[CAPABILITY_ENV_VAR] == '--enable-ssl2'


def test_unknown_capability_in_environment():
    with pytest.raises(ConfigDecodeError):
        capability_from_environment({CAPABILITY_ENV_VAR: '--enable-tls9'})


def test_describe_mentions_every_setting():
    text = server(SSL2, SecureOption(0), CapabilityFlag.ENABLE_SSL2, SSL2_COMPATIBLE_CIPHERS).describe()

    assert 'SSLv2_method' in text
    assert 'options=0' in text
    assert '--enable-ssl2' in text
    assert 'RC4-MD5' in text
