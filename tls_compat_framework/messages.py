"""
Coordinator <-> agent message protocol

Messages are JSON lines. Agents write to stdout and read from stdin, so
agent diagnostics must go to stderr.
"""

import json
from dataclasses import dataclass
from typing import IO, Optional, Union


class MessageDecodeError(ValueError):
    """Raised on a line that is not a known protocol message"""
    pass


@dataclass(frozen=True)
class Listening:
    """server -> coordinator: the listener is bound"""
    type = 'server_listening'


@dataclass(frozen=True)
class Close:
    """coordinator -> server: shut down gracefully"""
    type = 'close'


@dataclass(frozen=True)
class HandshakeComplete:
    """client -> coordinator: the handshake succeeded"""
    type = 'client_done'


Message = Union[Listening, Close, HandshakeComplete]

MESSAGE_TYPES = {cls.type: cls for cls in (Listening, Close, HandshakeComplete)}


def encode_message(message: Message) -> str:
    return json.dumps({'type': message.type}) + '\n'


def decode_message(line: str) -> Message:
    """
    Parse one protocol line

    Raises:
        MessageDecodeError: If the line is not a JSON object with a known type
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as e:
        raise MessageDecodeError(f"Not a protocol message: {line.strip()!r}") from e

    if not isinstance(payload, dict) or payload.get('type') not in MESSAGE_TYPES:
        raise MessageDecodeError(f"Unknown protocol message: {line.strip()!r}")

    return MESSAGE_TYPES[payload['type']]()


class MessageChannel:
    """Line-based message channel over a pair of text streams"""

    def __init__(self, reader: IO[str], writer: IO[str]):
        self.reader = reader
        self.writer = writer

    def send(self, message: Message):
        self.writer.write(encode_message(message))
        self.writer.flush()

    def receive(self) -> Optional[Message]:
        """Read the next message, or None once the peer closed the channel"""
        line = self.reader.readline()
        if not line:
            return None
        return decode_message(line)
