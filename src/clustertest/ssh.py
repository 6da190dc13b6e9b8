"""SSH client for the gateway and coordinator hops of a test-cluster session."""
import logging
from pathlib import Path
from typing import Any, BinaryIO, Optional, Tuple

import paramiko

logger = logging.getLogger(__name__)

STREAM_CHUNK_SIZE = 32768


class SSHClient:
    """SSH client for read-only checks and streamed remote commands."""

    def __init__(
        self,
        host: str,
        port: int = 22,
        username: Optional[str] = None,
        private_key_path: Optional[str] = None,
        timeout: int = 10,
        sock: Any = None,
    ):
        """
        Initialize SSH client connection parameters.

        Args:
            host: SSH host name or address. Required.
            port: SSH port number. Default: 22.
            username: SSH username. Optional; paramiko falls back to the local login.
            private_key_path: Path to a private key. Optional; the agent and default keys are always tried.
            timeout: Connect timeout in seconds. Does not bound remote command runtime.
            sock: Already open socket-like object, e.g. a tunnel channel from a previous hop.

        Raises:
            ValueError: If host is empty or port is invalid.
        """
        if not host or not isinstance(host, str):
            raise ValueError("host must be a non-empty string")
        if not isinstance(port, int) or port <= 0 or port > 65535:
            raise ValueError("port must be an integer between 1 and 65535")

        self.host = host
        self.port = port
        self.username = username
        self.private_key_path = private_key_path
        self.timeout = timeout
        self.sock = sock
        self.client: Optional[paramiko.SSHClient] = None

    def is_connected(self) -> bool:
        if self.client is None:
            return False
        transport = self.client.get_transport()
        return transport is not None and transport.is_active()

    def connect(self) -> None:
        """
        Establish SSH connection to the host.

        Raises:
            FileNotFoundError: If the private key file does not exist.
            paramiko.AuthenticationException: If authentication fails.
            paramiko.SSHException: If the SSH handshake fails.
            OSError: If the host cannot be reached.
        """
        if self.is_connected():
            logger.debug("Already connected to %s", self.host)
            return

        key_filename = None
        if self.private_key_path:
            key_path = Path(self.private_key_path).expanduser()
            if not key_path.exists():
                raise FileNotFoundError(f"Private key file not found: {self.private_key_path}")
            key_filename = str(key_path)

        self.client = paramiko.SSHClient()
        self.client.load_system_host_keys()
        self.client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            self.client.connect(
                hostname=self.host,
                port=self.port,
                username=self.username,
                key_filename=key_filename,
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
                allow_agent=True,
                look_for_keys=True,
                sock=self.sock,
            )
        except Exception:
            self.client.close()
            self.client = None
            raise
        logger.debug("SSH connection established to %s:%s", self.host, self.port)

    def disconnect(self) -> None:
        """Close SSH connection."""
        if self.client:
            self.client.close()
            self.client = None
            logger.debug("SSH connection closed to %s", self.host)

    def _require_connection(self) -> paramiko.Transport:
        if not self.is_connected():
            raise RuntimeError("Not connected to remote host. Call connect() first.")
        return self.client.get_transport()

    def open_tunnel(self, host: str, port: int = 22) -> paramiko.Channel:
        """
        Open a direct-tcpip channel from this host to host:port.

        The returned channel can be passed as ``sock`` to the next hop's SSHClient.
        """
        transport = self._require_connection()
        channel = transport.open_channel("direct-tcpip", (host, port), ("127.0.0.1", 0), timeout=self.timeout)
        logger.debug("Tunnel opened via %s to %s:%s", self.host, host, port)
        return channel

    def execute(self, command: str) -> Tuple[int, str, str]:
        """
        Execute a short command and collect its output.

        Returns:
            Tuple of (exit_code, stdout, stderr).

        Raises:
            ValueError: If command is empty.
            RuntimeError: If not connected.
        """
        if not command or not isinstance(command, str):
            raise ValueError("command must be a non-empty string")
        self._require_connection()

        stdin, stdout, stderr = self.client.exec_command(command, timeout=self.timeout)
        stdout_text = stdout.read().decode("utf-8", errors="replace")
        stderr_text = stderr.read().decode("utf-8", errors="replace")
        exit_code = stdout.channel.recv_exit_status()
        logger.debug("Command executed on %s: %s (exit code: %s)", self.host, command, exit_code)
        return exit_code, stdout_text, stderr_text

    def stream(self, command: str, sink: BinaryIO) -> int:
        """
        Run a command on a pty and forward its combined output to sink until it ends.

        There is no timeout: the call returns when the remote side closes the
        channel. Interrupting the caller closes the channel, which hangs up the
        remote pty.

        Returns:
            Remote exit status, or -1 if the remote side reported none.
        """
        if not command or not isinstance(command, str):
            raise ValueError("command must be a non-empty string")
        transport = self._require_connection()

        channel = transport.open_session()
        try:
            channel.get_pty()
            channel.set_combine_stderr(True)
            channel.exec_command(command)
            while True:
                data = channel.recv(STREAM_CHUNK_SIZE)
                if not data:
                    break
                sink.write(data)
            return channel.recv_exit_status()
        finally:
            channel.close()
