"""
Read-only checks that must pass before anything expensive or destructive runs.
"""
import logging
import socket
import subprocess
from typing import Callable, Optional

import paramiko

from clustertest.config import ClusterTestConfig
from clustertest.errors import ConnectivityError, CredentialError
from clustertest.ssh import SSHClient
from clustertest.types import RunConfig

logger = logging.getLogger(__name__)

CREDENTIAL_CHECK_TIMEOUT = 60

AUTH_HINT = "renew access credential (e.g. refresh your SSH certificate or run ssh-add), then retry"
NETWORK_HINT = "check that you are on the VPN and that CLUSTERTEST_GATEWAY_HOST points at a reachable gateway"
BUILD_CREDENTIAL_HINT = "log in to the image build service, then retry"


def check_gateway(config: RunConfig, settings: ClusterTestConfig, ssh_factory: Callable[..., SSHClient] = SSHClient) -> None:
    """
    Verify that the workspace's access gateway accepts a login.

    Raises:
        ConnectivityError: If the gateway is unreachable or rejects the login.
    """
    host = settings.gateway_for(config.workspace)
    logger.info("Checking access gateway %s...", host)
    client = ssh_factory(
        host=host,
        port=settings.ssh_port,
        username=settings.ssh_user,
        private_key_path=settings.ssh_key,
        timeout=settings.connect_timeout,
    )
    try:
        client.connect()
        exit_code, _, stderr = client.execute("true")
    except paramiko.AuthenticationException as e:
        logger.debug("Gateway authentication failed: %s", e)
        raise ConnectivityError(f"Access gateway {host} rejected the login", hint=AUTH_HINT, detail=str(e)) from e
    except FileNotFoundError as e:
        raise ConnectivityError(str(e), hint="set CLUSTERTEST_SSH_KEY to an existing private key, or unset it to use your SSH agent") from e
    except (paramiko.SSHException, socket.error) as e:
        logger.debug("Gateway connection failed: %s", e)
        raise ConnectivityError(f"Access gateway {host} is unreachable", hint=NETWORK_HINT, detail=str(e)) from e
    finally:
        client.disconnect()

    if exit_code != 0:
        raise ConnectivityError(
            f"Access gateway {host} accepted the login but cannot run commands (exit code {exit_code})",
            hint=AUTH_HINT,
            detail=stderr.strip(),
        )
    logger.debug("Access gateway %s is reachable", host)


def check_build_credentials(settings: ClusterTestConfig, runner: Optional[Callable[..., subprocess.CompletedProcess]] = None) -> None:
    """
    Verify that the image build service has credentials available.

    Raises:
        CredentialError: If the credential check fails, times out or cannot be run.
    """
    runner = runner or subprocess.run
    command = settings.credential_command
    logger.info("Checking image build credentials...")
    try:
        result = runner(
            command,
            capture_output=True,
            text=True,
            encoding="utf-8",
            timeout=CREDENTIAL_CHECK_TIMEOUT,
            check=False,
        )
    except FileNotFoundError as e:
        raise CredentialError(f"Credential check command not found: {command[0]}", hint=BUILD_CREDENTIAL_HINT, detail=str(e)) from e
    except subprocess.TimeoutExpired as e:
        raise CredentialError(
            f"Credential check timed out after {CREDENTIAL_CHECK_TIMEOUT}s", hint=BUILD_CREDENTIAL_HINT, detail=str(e)
        ) from e

    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        logger.debug("Credential check output: %s", detail)
        raise CredentialError("Image build service credentials are missing or expired", hint=BUILD_CREDENTIAL_HINT, detail=detail)


def run_preflight(
    config: RunConfig,
    settings: ClusterTestConfig,
    ssh_factory: Callable[..., SSHClient] = SSHClient,
    runner: Optional[Callable[..., subprocess.CompletedProcess]] = None,
) -> None:
    """Check the gateway, and the build credentials when a build will be needed."""
    check_gateway(config, settings, ssh_factory=ssh_factory)
    if config.tag is None:
        check_build_credentials(settings, runner=runner)
