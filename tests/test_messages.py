import io

import pytest

from tls_compat_framework.messages import (
    Listening, Close, HandshakeComplete, MessageChannel, MessageDecodeError,
    encode_message, decode_message
)


def test_wire_names():
    assert encode_message(Listening()) == '{"type": "server_listening"}\n'
    assert encode_message(Close()) == '{"type": "close"}\n'
    assert encode_message(HandshakeComplete()) == '{"type": "client_done"}\n'


def test_decode_known_messages():
    assert decode_message('{"type": "close"}\n') == Close()
    assert isinstance(decode_message('{"type":"client_done"}'), HandshakeComplete)


@pytest.mark.parametrize('line', ['close\n', '{"type": "shutdown"}', '["close"]', '{}'])
def test_decode_rejects_unknown_lines(line):
    with pytest.raises(MessageDecodeError):
        decode_message(line)


def test_channel_send_and_receive():
    writer = io.StringIO()
    channel = MessageChannel(io.StringIO('{"type": "close"}\n'), writer)

    channel.send(Listening())

    assert writer.getvalue() == '{"type": "server_listening"}\n'
    assert channel.receive() == Close()
    assert channel.receive() is None
