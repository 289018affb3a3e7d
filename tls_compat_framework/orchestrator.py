"""
Handshake orchestrator

Runs every test case as a trial between two agent processes, one server and
one client, and reconciles their exit codes with the predicted outcome.

Each trial is driven by a small state machine fed from a single event queue.
One reader thread per agent process forwards protocol lines and, after EOF,
the exit code. Exit events of the two agents may arrive in either order.
"""

import os
import queue
import signal
import socket
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .config import HarnessConfig
from .endpoint import EndpointConfig, encode_record, capability_environment
from .matrix import TestCase
from .messages import Message, Listening, Close, HandshakeComplete, encode_message, decode_message
from .predictor import check_compatibility
from .results import TrialResult, TrialStatus
from .vocabulary import Role


AGENT_MODULE = 'tls_compat_framework.agent'


class ReconciliationError(AssertionError):
    """Observed exit codes contradict the predicted outcome"""
    pass


class TrialTimeoutError(Exception):
    """Raised when a trial does not reconcile before its deadline"""
    pass


class TrialState(Enum):
    IDLE = "idle"
    SERVER_SPAWNED = "server_spawned"
    CLIENT_SPAWNED = "client_spawned"
    RECONCILED = "reconciled"


@dataclass
class HandshakeRunRecord:
    """Exit codes collected during one trial"""
    server_exit_code: Optional[int] = None
    client_exit_code: Optional[int] = None
    client_started: bool = False


@dataclass(frozen=True)
class AgentEvent:
    """A protocol line or the exit code of one agent"""
    role: Role
    line: Optional[str] = None
    exit_code: Optional[int] = None

    @property
    def exited(self) -> bool:
        return self.line is None


class AgentProcess:
    """
    One spawned agent and its control channel

    The agent runs in its own process group so that stop() can clean up
    anything it left behind.
    """

    def __init__(self, role: Role, cmd: List[str], events: queue.Queue,
                 env: Optional[dict] = None, show_output: bool = False):
        self.role = role
        self.events = events
        self.process = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=None if show_output else subprocess.DEVNULL,
            env=env,
            text=True,
            preexec_fn=os.setsid  # Create new process group
        )
        self._pgid = os.getpgid(self.process.pid)

        self._reader = threading.Thread(target=self._pump, name=f"agent-{role.value}", daemon=True)
        self._reader.start()

    def _pump(self):
        for line in self.process.stdout:
            self.events.put(AgentEvent(self.role, line=line))
        self.events.put(AgentEvent(self.role, exit_code=self.process.wait()))

    @property
    def connected(self) -> bool:
        return self.process.poll() is None and not self.process.stdin.closed

    def send(self, message: Message) -> bool:
        """
        Send a message if the agent is still reachable

        Returns:
            True if the message was written
        """
        if not self.connected:
            return False
        try:
            self.process.stdin.write(encode_message(message))
            self.process.stdin.flush()
        except BrokenPipeError:
            return False
        return True

    def stop(self, timeout: float = 5):
        """
        Terminate the agent if it is still running and release its pipes

        Sends SIGTERM to the process group first, SIGKILL after timeout.
        """
        if self.process.poll() is None:
            try:
                os.killpg(self._pgid, signal.SIGTERM)
                self.process.wait(timeout=timeout)
            except ProcessLookupError:
                pass
            except subprocess.TimeoutExpired:
                os.killpg(self._pgid, signal.SIGKILL)
                self.process.wait(timeout=2)

        self._reader.join(timeout=timeout)
        if not self.process.stdin.closed:
            try:
                self.process.stdin.close()
            except BrokenPipeError:
                pass
        self.process.stdout.close()

    def __repr__(self):
        status = "running" if self.process.poll() is None else "stopped"
        return f"<AgentProcess {self.role.value} pid={self.process.pid} [{status}]>"


AgentFactory = Callable[[Role, EndpointConfig, queue.Queue], AgentProcess]


def ensure_port_available(port: int, host: str = '127.0.0.1', timeout: float = 5) -> bool:
    """
    Wait until the shared port can be bound again

    Args:
        port: Port number
        host: Host address
        timeout: Timeout in seconds

    Returns:
        bool: True once the port is free, False on timeout
    """
    start_time = time.time()
    retry_interval = 0.2

    while True:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            return True
        except OSError:
            if time.time() - start_time >= timeout:
                return False
            time.sleep(retry_interval)
        finally:
            sock.close()


def reconcile(case: TestCase, record: HandshakeRunRecord) -> TrialStatus:
    """
    Compare observed exit codes with the predicted outcome

    A client that never started counts as a failed side.

    Raises:
        ReconciliationError: If the observation contradicts the prediction
    """
    server_code = record.server_exit_code
    client_code = record.client_exit_code

    if case.expected_success:
        if server_code != 0 or client_code != 0:
            raise ReconciliationError(
                f"Case #{case.index} expected success but got server={server_code}, "
                f"client={client_code} (client started: {record.client_started})\n"
                f"  server: {case.server.describe()}\n"
                f"  client: {case.client.describe()}"
            )
        return TrialStatus.SUCCEEDED_AS_EXPECTED

    if server_code == 0 and client_code == 0:
        raise ReconciliationError(
            f"Case #{case.index} expected failure but both agents exited with 0 "
            f"({check_compatibility(case.server, case.client).reason})\n"
            f"  server: {case.server.describe()}\n"
            f"  client: {case.client.describe()}"
        )
    return TrialStatus.FAILED_AS_EXPECTED


class HandshakeOrchestrator:
    """Run test cases sequentially, one reconciled trial at a time"""

    def __init__(self, config: HarnessConfig, verbose: bool = False,
                 agent_factory: Optional[AgentFactory] = None):
        """
        Initialize orchestrator

        Args:
            config: HarnessConfig instance
            verbose: Print trial progress
            agent_factory: Replaces process spawning, used by tests
        """
        self.config = config
        self.verbose = verbose
        self.network = config.get_network_settings()
        self.certs = config.get_certificate_paths()
        self.test_settings = config.get_test_execution_settings()
        self.agent_factory = agent_factory or self.spawn_agent
        self.results: List[TrialResult] = []

    def log(self, message: str):
        if self.verbose:
            print(f"[Orchestrator] {message}")

    def agent_command(self, role: Role, endpoint: EndpointConfig) -> List[str]:
        return [
            sys.executable, '-m', AGENT_MODULE,
            role.value, encode_record(endpoint),
            '--host', str(self.network['host']),
            '--port', str(self.network['port']),
            '--cert', str(self.certs['cert']),
            '--key', str(self.certs['key']),
            '--handshake-timeout', str(self.test_settings['handshake_timeout'])
        ]

    def spawn_agent(self, role: Role, endpoint: EndpointConfig, events: queue.Queue) -> AgentProcess:
        show_output = bool(self.test_settings.get('show_agent_output'))
        env = capability_environment(endpoint, os.environ)
        if show_output:
            env['TLS_COMPAT_DEBUG'] = '1'

        return AgentProcess(role, self.agent_command(role, endpoint), events,
                            env=env, show_output=show_output)

    def _next_event(self, events: queue.Queue, deadline: float) -> AgentEvent:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TrialTimeoutError(f"Trial exceeded {self.test_settings['trial_timeout']}s timeout")
        try:
            return events.get(timeout=remaining)
        except queue.Empty:
            raise TrialTimeoutError(
                f"Trial exceeded {self.test_settings['trial_timeout']}s timeout"
            ) from None

    def run_trial(self, case: TestCase) -> TrialResult:
        """
        Run one trial to reconciliation

        Args:
            case: TestCase to run

        Returns:
            TrialResult

        Raises:
            ReconciliationError: Observed outcome contradicts the prediction
            TrialTimeoutError: The trial did not reconcile in time
        """
        record = HandshakeRunRecord()
        result = TrialResult(case=case)
        events: queue.Queue = queue.Queue()
        server = None
        client = None

        start_time = time.time()
        deadline = time.monotonic() + self.test_settings['trial_timeout']

        self.log(f"Starting case #{case.index}, success expected: {case.expected_success}")
        self.log(f"  server: {case.server.describe()}")
        self.log(f"  client: {case.client.describe()}")
        if not case.expected_success:
            self.log(f"  predicted failure: {check_compatibility(case.server, case.client).reason}")

        state = TrialState.IDLE
        try:
            server = self.agent_factory(Role.SERVER, case.server, events)
            state = TrialState.SERVER_SPAWNED

            while state is not TrialState.RECONCILED:
                event = self._next_event(events, deadline)

                if event.role is Role.SERVER:
                    if event.exited:
                        self.log(f"Server exited with code: {event.exit_code}")
                        record.server_exit_code = event.exit_code
                        if record.client_exit_code is not None or not record.client_started:
                            state = TrialState.RECONCILED
                    elif isinstance(decode_message(event.line), Listening) \
                            and state is TrialState.SERVER_SPAWNED:
                        self.log("Starting client")
                        client = self.agent_factory(Role.CLIENT, case.client, events)
                        record.client_started = True
                        state = TrialState.CLIENT_SPAWNED

                else:
                    if event.exited:
                        self.log(f"Client exited with code: {event.exit_code}")
                        record.client_exit_code = event.exit_code
                        if record.server_exit_code is not None:
                            state = TrialState.RECONCILED
                        else:
                            server.send(Close())
                    elif isinstance(decode_message(event.line), HandshakeComplete):
                        server.send(Close())

        except TrialTimeoutError as e:
            result.status = TrialStatus.TIMEOUT
            result.error_message = str(e)
            raise

        finally:
            for agent in (client, server):
                if agent is not None:
                    agent.stop()

            result.server_exit_code = record.server_exit_code
            result.client_exit_code = record.client_exit_code
            result.client_started = record.client_started
            result.duration = time.time() - start_time
            self.results.append(result)

        try:
            result.status = reconcile(case, record)
        except ReconciliationError as e:
            result.status = TrialStatus.MISMATCH
            result.error_message = str(e)
            raise

        self.log(f"Case #{case.index}: {result.status.value}")
        return result

    def run(self, cases: List[TestCase]) -> List[TrialResult]:
        """
        Run all cases in order, stopping at the first failure

        Args:
            cases: Test cases in matrix order

        Returns:
            List of TrialResult objects, one per case
        """
        self.results = []
        port = self.network['port']
        host = self.network['host']

        print(f"\nRunning {len(cases)} handshake trials on {host}:{port}")
        print("=" * 70)

        for case in cases:
            if not ensure_port_available(port, host, timeout=self.test_settings['port_wait_timeout']):
                raise RuntimeError(f"Port {port} is not available after "
                                   f"{self.test_settings['port_wait_timeout']}s")
            self.run_trial(case)

        print("All tests done!")
        return self.results
