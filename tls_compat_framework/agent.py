"""
Agent runtime

Entry point of the processes spawned by the orchestrator. An agent plays
either the server or the client side of one handshake trial and reports the
outcome through its exit code:

    0  clean completion
    1  bind, negotiation or connection error
    2  malformed invocation

Usage:
    python -m tls_compat_framework.agent server '<record>' --port 4433
    python -m tls_compat_framework.agent client '<record>' --port 4433
"""

import argparse
import os
import selectors
import socket
import sys
from pathlib import Path

from tlslite.api import TLSConnection, X509CertChain, parsePEMKey
from tlslite.errors import TLSError

from .endpoint import (
    EndpointConfig, ConfigDecodeError, decode_record, capability_from_environment
)
from .messages import MessageChannel, Listening, Close, HandshakeComplete, MessageDecodeError
from .negotiation import build_handshake_settings
from .vocabulary import Role


DEFAULT_HOST = '127.0.0.1'
DEFAULT_PORT = 4433
FIXTURES_DIR = Path(__file__).parent / 'fixtures'

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

DEBUG_ENV_VAR = 'TLS_COMPAT_DEBUG'


def debug(role: str, message: str):
    if os.environ.get(DEBUG_ENV_VAR):
        print(f"[Agent:{role}] {message}", file=sys.stderr, flush=True)


def load_credentials(cert_path: Path, key_path: Path):
    """
    Read the server certificate chain and private key

    Returns:
        (X509CertChain, private key) tuple
    """
    text_key = str(open(key_path, 'rb').read(), 'utf-8')
    private_key = parsePEMKey(text_key, private=True, implementations=["python"])

    text_cert = str(open(cert_path, 'rb').read(), 'utf-8')
    cert_chain = X509CertChain()
    cert_chain.parsePemList(text_cert)

    return cert_chain, private_key


def run_server(config: EndpointConfig, channel: MessageChannel, host: str, port: int,
               cert_path: Path, key_path: Path, handshake_timeout: float) -> int:
    """
    Listen, accept one connection and wait for a close instruction

    Args:
        config: Server endpoint configuration
        channel: Control channel to the coordinator
        host, port: Listening address
        cert_path, key_path: Server credentials
        handshake_timeout: Socket timeout applied to the accepted connection

    Returns:
        Process exit code
    """
    debug('server', f"config: {config.describe()}")

    try:
        settings = build_handshake_settings(config)
        cert_chain, private_key = load_credentials(cert_path, key_path)
    except (ValueError, OSError) as e:
        debug('server', f"Server error: {e}")
        return EXIT_FAILURE

    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        listener.bind((host, port))
        listener.listen(1)
    except OSError as e:
        debug('server', f"Server error: {e}")
        listener.close()
        return EXIT_FAILURE

    selector = selectors.DefaultSelector()
    selector.register(listener, selectors.EVENT_READ)
    selector.register(channel.reader, selectors.EVENT_READ)

    connection = None
    channel.send(Listening())

    try:
        while True:
            for key, _ in selector.select():
                if key.fileobj is listener:
                    sock, address = listener.accept()
                    sock.settimeout(handshake_timeout)
                    selector.unregister(listener)
                    debug('server', f"connection from {address}")

                    connection = TLSConnection(sock)
                    try:
                        connection.handshakeServer(certChain=cert_chain,
                                                   privateKey=private_key,
                                                   settings=settings)
                    except (TLSError, OSError, AssertionError) as e:
                        debug('server', f"Client error on server: {e!r}")
                        return EXIT_FAILURE

                    debug('server', f"handshake done, version {connection.version}")
                    continue

                try:
                    message = channel.receive()
                except MessageDecodeError as e:
                    debug('server', str(e))
                    return EXIT_FAILURE

                if message is None:
                    debug('server', "control channel closed")
                    return EXIT_FAILURE
                if isinstance(message, Close):
                    return EXIT_OK
    finally:
        selector.close()
        if connection is not None:
            connection.sock.close()
        listener.close()


def run_client(config: EndpointConfig, channel: MessageChannel, host: str, port: int,
               handshake_timeout: float) -> int:
    """
    Connect and handshake without verifying the server certificate

    tlslite-ng only checks the peer chain when a checker is supplied, so the
    self-signed fixture is accepted as is. Once HandshakeComplete is sent the
    client waits for the server to close the connection, at most
    handshake_timeout, and exits 0 either way.
    """
    debug('client', f"config: {config.describe()}")

    try:
        settings = build_handshake_settings(config)
    except ValueError as e:
        debug('client', f"Client could not connect: {e}")
        return EXIT_FAILURE

    try:
        sock = socket.create_connection((host, port), timeout=handshake_timeout)
    except OSError as e:
        debug('client', f"Client could not connect: {e}")
        return EXIT_FAILURE

    connection = TLSConnection(sock)
    try:
        connection.handshakeClientCert(settings=settings)
        debug('client', f"protocol used: {connection.version}")
        channel.send(HandshakeComplete())
    except (TLSError, OSError, AssertionError) as e:
        debug('client', f"Client could not connect: {e!r}")
        sock.close()
        return EXIT_FAILURE

    # the server closes first, once the coordinator tells it to
    try:
        while sock.recv(4096):
            pass
    except OSError as e:
        debug('client', f"connection ended: {e!r}")
    finally:
        sock.close()

    return EXIT_OK


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description='Handshake compatibility agent')
    parser.add_argument('role', choices=[r.value for r in Role])
    parser.add_argument('record', help='JSON endpoint record')
    parser.add_argument('--host', default=DEFAULT_HOST)
    parser.add_argument('--port', type=int, default=DEFAULT_PORT)
    parser.add_argument('--cert', type=Path, default=FIXTURES_DIR / 'agent.crt')
    parser.add_argument('--key', type=Path, default=FIXTURES_DIR / 'agent.key')
    parser.add_argument('--handshake-timeout', type=float, default=10.0)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_arguments(argv)

    try:
        capability = capability_from_environment(os.environ)
        config = decode_record(args.record, capability)
    except ConfigDecodeError as e:
        print(f"Invalid endpoint record: {e}", file=sys.stderr)
        return EXIT_USAGE

    if config.role.value != args.role:
        print(f"Record role {config.role.value} does not match {args.role}", file=sys.stderr)
        return EXIT_USAGE

    channel = MessageChannel(sys.stdin, sys.stdout)

    if config.role is Role.SERVER:
        return run_server(config, channel, args.host, args.port,
                          args.cert, args.key, args.handshake_timeout)
    return run_client(config, channel, args.host, args.port, args.handshake_timeout)


if __name__ == '__main__':
    sys.exit(main())
