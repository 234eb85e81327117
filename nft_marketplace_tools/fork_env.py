"""
Fork Environment

Responsibilities:
1. Start a local Anvil node forked from Ethereum mainnet (or attach to one)
2. Provide the Web3 connection and snapshot/revert for test isolation
3. Hand out impersonated signers for mainnet accounts
"""

import os
import queue
import socket
import subprocess
import threading
import time
from typing import Any, Dict, List, Optional

import psutil
import requests
from eth_utils import to_checksum_address
from web3 import Web3
from web3.providers.rpc import HTTPProvider

from . import config
from .gas_report import GasReporter
from .impersonation import ImpersonatedSigner, impersonate, rpc_request

STDERR_BUFFER_LINES = 200


def make_web3(rpc_url: str, timeout: int = 60) -> Web3:
    """
    Web3 over HTTP that bypasses proxy settings

    Local connections should never go through a system proxy.
    """
    session = requests.Session()
    session.proxies = {
        'http': None,
        'https': None,
    }
    session.trust_env = False
    provider = HTTPProvider(
        rpc_url,
        session=session,
        request_kwargs={'timeout': timeout},
    )
    return Web3(provider)


class ForkEnvironment:
    """Mainnet fork management class"""

    def __init__(
        self,
        fork_url: Optional[str] = None,
        chain_id: int = 31337,
        anvil_port: int = config.ANVIL_PORT,
        fork_block_number: Optional[int] = None,
        gas_reporter: Optional[GasReporter] = None,
    ):
        """
        Initialize fork environment

        Args:
            fork_url: Mainnet RPC URL to fork from (defaults to MAINNET_RPC_URL)
            chain_id: Chain ID reported by the fork
            anvil_port: Local port for Anvil
            fork_block_number: Pin the fork to a block for reproducible owners/balances
            gas_reporter: Receives gas usage of transactions sent by signers
        """
        self.fork_url = fork_url or config.MAINNET_RPC_URL
        self.chain_id = chain_id
        self.anvil_port = anvil_port
        self.fork_block_number = fork_block_number
        self.gas_reporter = gas_reporter

        self.anvil_process: Optional[subprocess.Popen] = None
        self.anvil_cmd: Optional[str] = None
        self.rpc_url: Optional[str] = None
        self.w3: Optional[Web3] = None
        self.initial_snapshot_id: Optional[str] = None
        self._signers: List[ImpersonatedSigner] = []

    def start(self) -> Dict[str, Any]:
        """
        Start Anvil and connect to it

        Returns:
            Environment info dictionary
        """
        self._start_anvil_fork()
        try:
            self.connect(f"http://127.0.0.1:{self.anvil_port}")

            print(f"  Fork: {self.fork_url}")
            if self.fork_block_number is not None:
                print(f"  Fork block: {self.fork_block_number}")

            self.initial_snapshot_id = self.create_snapshot()
            return self.info()
        except BaseException:
            self._cleanup_anvil()
            self.w3 = None
            raise

    def connect(self, rpc_url: str) -> Web3:
        """Attach to an already running fork node"""
        self.rpc_url = rpc_url
        self.w3 = make_web3(rpc_url)
        if not self.w3.is_connected():
            raise ConnectionError(f"Cannot connect to fork node: {rpc_url}")

        print(f"✓ Fork node connected")
        print(f"  Chain ID: {self.w3.eth.chain_id}")
        print(f"  RPC: {rpc_url}")
        return self.w3

    def info(self) -> Dict[str, Any]:
        self._require_started()
        return {
            'rpc_url': self.rpc_url,
            'chain_id': self.w3.eth.chain_id,
            'block_number': self.w3.eth.block_number,
            'accounts': list(self.w3.eth.accounts),
            'initial_snapshot_id': self.initial_snapshot_id,
        }

    def create_snapshot(self) -> str:
        """
        Create snapshot of current state

        Returns:
            Snapshot ID
        """
        self._require_started()
        return rpc_request(self.w3, 'evm_snapshot', [])

    def revert_to_snapshot(self, snapshot_id: str) -> bool:
        """
        Revert to specified snapshot

        A snapshot can only be reverted to once; take a new one afterwards.
        """
        self._require_started()
        reverted = bool(rpc_request(self.w3, 'evm_revert', [snapshot_id]))
        if not reverted:
            print(f"⚠️  Failed to revert snapshot: {snapshot_id}")
        return reverted

    def set_balance(self, address: str, amount_wei: int) -> None:
        self._require_started()
        rpc_request(
            self.w3,
            'anvil_setBalance',
            [to_checksum_address(address), hex(amount_wei)],
        )

    def impersonate(self, address: str) -> ImpersonatedSigner:
        """Impersonate a mainnet account; stopped again by stop()"""
        self._require_started()
        signer = impersonate(self.w3, address, gas_reporter=self.gas_reporter)
        self._signers.append(signer)
        return signer

    def stop(self) -> None:
        for signer in self._signers:
            try:
                signer.stop()
            except (RuntimeError, requests.RequestException) as e:
                print(f"⚠️  Failed to stop impersonating {signer.address}: {e}")
        self._signers = []
        self._cleanup_anvil()
        print("✓ Environment cleaned up")

    def __enter__(self) -> "ForkEnvironment":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _require_started(self) -> None:
        if not self.w3:
            raise RuntimeError("Environment not started")

    def _find_anvil(self) -> str:
        anvil_paths = [
            os.path.expanduser('~/.foundry/bin/anvil'),
            '/usr/local/bin/anvil',
            'anvil',
        ]
        for path in anvil_paths:
            try:
                subprocess.run(
                    [path, '--version'],
                    capture_output=True,
                    check=True,
                    text=True,
                    timeout=5,
                )
                return path
            except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
                continue

        raise RuntimeError(
            "Anvil not found! Please install Foundry:\n"
            "  curl -L https://foundry.paradigm.xyz | bash\n"
            "  foundryup"
        )

    def _anvil_command(self) -> List[str]:
        cmd = [
            self.anvil_cmd,
            '--fork-url', self.fork_url,
            '--port', str(self.anvil_port),
            '--host', '127.0.0.1',
            '--chain-id', str(self.chain_id),
            '--timeout', '60000',
            '--retries', '3',
        ]
        if self.fork_block_number is not None:
            cmd += ['--fork-block-number', str(self.fork_block_number)]
        return cmd

    def _start_anvil_fork(self, max_wait: int = 60) -> None:
        """Start Anvil fork process"""
        self._kill_zombie_anvil()

        if self._is_port_in_use(self.anvil_port):
            raise RuntimeError(
                f"Port {self.anvil_port} is already in use, cannot start Anvil\n"
                f"Attach to the running node instead (FORK_RPC_URL) or free the port:\n"
                f"  lsof -ti:{self.anvil_port} | xargs kill -9"
            )

        if not self._test_fork_url():
            print(f"⚠️  Warning: Cannot reach fork URL quickly, continuing anyway")

        self.anvil_cmd = self._find_anvil()
        print(f"✓ Found Anvil: {self.anvil_cmd}")
        print(f"🔨 Starting Anvil fork on port {self.anvil_port}...")

        anvil_env = os.environ.copy()
        for var in ['http_proxy', 'https_proxy', 'HTTP_PROXY', 'HTTPS_PROXY', 'all_proxy', 'ALL_PROXY']:
            anvil_env.pop(var, None)

        # stdout is discarded and stderr drained by a thread so pipes never fill up
        self.anvil_process = subprocess.Popen(
            self._anvil_command(),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            env=anvil_env,
        )
        stderr_queue: "queue.Queue[str]" = queue.Queue(maxsize=STDERR_BUFFER_LINES)
        process = self.anvil_process

        def read_stderr():
            for line in iter(process.stderr.readline, b''):
                self._buffer_line(stderr_queue, line.decode('utf-8', errors='ignore').strip())

        threading.Thread(target=read_stderr, daemon=True).start()

        for i in range(max_wait):
            time.sleep(1)

            if self._is_port_in_use(self.anvil_port):
                print(f"✓ Anvil started successfully ({i+1}s)")
                return

            if self.anvil_process.poll() is not None:
                returncode = self.anvil_process.returncode
                time.sleep(0.5)
                error_msg = '\n'.join(self._drain(stderr_queue)[-20:]) or "No error message"
                self._cleanup_anvil()
                raise RuntimeError(
                    f"Anvil process exited unexpectedly (code {returncode})\n"
                    f"Error message: {error_msg[:500]}\n"
                    f"Fork URL: {self.fork_url}"
                )

            if (i + 1) % 10 == 0:
                print(f"   Waiting... ({i+1}s)")

        stderr_log = '\n'.join(self._drain(stderr_queue)[-30:]) or "No output captured"
        self._cleanup_anvil()
        raise RuntimeError(
            f"Anvil start timed out ({max_wait}s)\n"
            f"Fork URL: {self.fork_url}\n"
            f"Anvil stderr output (last 30 lines):\n{stderr_log}"
        )

    @staticmethod
    def _buffer_line(stderr_queue: "queue.Queue[str]", line: str) -> None:
        """Keep only the most recent lines; anvil logs for as long as it runs"""
        while True:
            try:
                stderr_queue.put_nowait(line)
                return
            except queue.Full:
                try:
                    stderr_queue.get_nowait()
                except queue.Empty:
                    pass

    @staticmethod
    def _drain(stderr_queue: "queue.Queue[str]") -> List[str]:
        lines = []
        while True:
            try:
                line = stderr_queue.get_nowait()
            except queue.Empty:
                return lines
            if line:
                lines.append(line)

    def _cleanup_anvil(self) -> None:
        """Cleanup Anvil process"""
        if self.anvil_process:
            try:
                self.anvil_process.terminate()
                self.anvil_process.wait(timeout=5)
                print("✓ Anvil process terminated")
            except subprocess.TimeoutExpired:
                self.anvil_process.kill()
                print("✓ Anvil process forcibly terminated")
            self.anvil_process = None

    def _is_port_in_use(self, port: int) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            return s.connect_ex(('127.0.0.1', port)) == 0

    def _kill_zombie_anvil(self) -> None:
        """
        Clean up Anvil processes left behind on our port

        Only kills actual anvil binaries started with this port, never the
        Python process itself.
        """
        current_pid = os.getpid()
        killed_count = 0
        for proc in psutil.process_iter(['pid', 'name', 'cmdline']):
            try:
                if proc.info['pid'] == current_pid:
                    continue
                name = (proc.info.get('name') or '').lower()
                cmdline = proc.info.get('cmdline') or []
                is_anvil_binary = name == 'anvil' or (cmdline and cmdline[0].endswith('/anvil'))
                if is_anvil_binary and str(self.anvil_port) in cmdline:
                    print(f"   Cleaning up zombie Anvil process: PID {proc.info['pid']}")
                    proc.kill()
                    proc.wait(timeout=3)
                    killed_count += 1
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.TimeoutExpired):
                continue

        if killed_count > 0:
            print(f"   ✓ Cleaned up {killed_count} zombie processes")
            time.sleep(1)

    def _test_fork_url(self, timeout: int = 5) -> bool:
        """Check that the upstream RPC answers eth_blockNumber"""
        session = requests.Session()
        session.trust_env = False
        try:
            response = session.post(
                self.fork_url,
                json={"jsonrpc": "2.0", "method": "eth_blockNumber", "params": [], "id": 1},
                timeout=timeout,
            )
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            print(f"   ⚠️  Connection test failed: {e}")
            return False

        if 'result' in result:
            print(f"   ✓ Fork URL connected successfully (Block: {int(result['result'], 16)})")
            return True
        print(f"   ⚠️  Fork URL response abnormal: {result}")
        return False
