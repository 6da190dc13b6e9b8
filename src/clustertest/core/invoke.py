"""Remote invocation over the gateway/coordinator SSH hops with dual-sink capture."""
from __future__ import annotations

import logging
import shlex
import socket
import sys
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Tuple

import paramiko

from clustertest.config import ClusterTestConfig
from clustertest.core.preflight import AUTH_HINT, NETWORK_HINT
from clustertest.errors import ConnectivityError
from clustertest.ssh import SSHClient
from clustertest.types import ResolvedArtifact, RunConfig
from clustertest.utils.fanout import FanoutWriter

logger = logging.getLogger(__name__)

MARKER_ENV = "TEST_MARKER"
REMOTE_USER_ENV = "TEST_USER"
INTERRUPTED_EXIT_CODE = 130


def build_remote_command(config: RunConfig, artifact: ResolvedArtifact, settings: ClusterTestConfig) -> str:
    """Build the shell command executed on the coordinator."""
    env_entries: List[str] = [
        *config.extra_env,
        f"{MARKER_ENV}={config.marker}",
        f"{REMOTE_USER_ENV}={config.marker}",
    ]
    parts: List[str] = [
        "env",
        *env_entries,
        *settings.remote_command,
        "--deploy",
        config.workspace,
        "--container",
        settings.container,
        "--image",
        f"{settings.image_repository}:{artifact.tag}",
        *config.passthrough_args,
    ]
    return " ".join(shlex.quote(part) for part in parts)


class RemoteInvoker:
    """Opens the two-hop session and streams one remote command to the terminal and a file."""

    def __init__(
        self,
        settings: ClusterTestConfig,
        workspace: str,
        ssh_factory: Callable[..., SSHClient] = SSHClient,
        terminal: Optional[BinaryIO] = None,
    ):
        self.settings = settings
        self.workspace = workspace
        self.ssh_factory = ssh_factory
        self.terminal = terminal if terminal is not None else sys.stdout.buffer

    def _connect(self) -> Tuple[SSHClient, SSHClient]:
        gateway_host = self.settings.gateway_for(self.workspace)
        gateway = self.ssh_factory(
            host=gateway_host,
            port=self.settings.ssh_port,
            username=self.settings.ssh_user,
            private_key_path=self.settings.ssh_key,
            timeout=self.settings.connect_timeout,
        )
        try:
            gateway.connect()
            tunnel = gateway.open_tunnel(self.settings.coordinator_host, self.settings.ssh_port)
            coordinator = self.ssh_factory(
                host=self.settings.coordinator_host,
                port=self.settings.ssh_port,
                username=self.settings.ssh_user,
                private_key_path=self.settings.ssh_key,
                timeout=self.settings.connect_timeout,
                sock=tunnel,
            )
            coordinator.connect()
        except paramiko.AuthenticationException as e:
            gateway.disconnect()
            raise ConnectivityError(
                f"Login to {self.settings.coordinator_host} via {gateway_host} was rejected",
                hint=AUTH_HINT,
                detail=str(e),
            ) from e
        except (paramiko.SSHException, socket.error) as e:
            gateway.disconnect()
            raise ConnectivityError(
                f"Could not reach {self.settings.coordinator_host} via {gateway_host}",
                hint=NETWORK_HINT,
                detail=str(e),
            ) from e
        except BaseException:
            gateway.disconnect()
            raise
        logger.info("Connected to %s via %s", self.settings.coordinator_host, gateway_host)
        return gateway, coordinator

    def run(self, command: str, output_path: Path) -> Tuple[int, bool]:
        """
        Run command remotely until it ends or the user interrupts it.

        Every byte of combined remote output goes to the terminal and is
        appended to output_path.

        Returns:
            Tuple of (exit_code, interrupted).
        """
        logger.info("Session output: %s", output_path)
        logger.debug("Remote command: %s", command)

        gateway: Optional[SSHClient] = None
        coordinator: Optional[SSHClient] = None
        exit_code = INTERRUPTED_EXIT_CODE
        interrupted = False
        with open(output_path, "ab") as capture:
            fanout = FanoutWriter([self.terminal, capture], names=["terminal", "session-output"])
            try:
                gateway, coordinator = self._connect()
                exit_code = coordinator.stream(command, fanout)
            except KeyboardInterrupt:
                interrupted = True
                logger.warning("Interrupted; closing the remote session")
            finally:
                fanout.close()
                if coordinator is not None:
                    coordinator.disconnect()
                if gateway is not None:
                    gateway.disconnect()

        capture_error = fanout.failed_sinks.get("session-output")
        if capture_error is not None:
            logger.error("Session output %s is incomplete, writing it failed: %s", output_path, capture_error)

        if not interrupted and exit_code < 0:
            logger.warning("Remote session ended without an exit status")
            exit_code = 1
        logger.info("Remote session finished with exit code %s", exit_code)
        return exit_code, interrupted
