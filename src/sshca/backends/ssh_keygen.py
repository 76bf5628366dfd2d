"""
ssh-keygen Backend

Runs OpenSSH's ``ssh-keygen`` as a subprocess. Commands are passed as an
argument list, never through a shell, so comments, key ids and
principals cannot inject shell syntax.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from sshca.backends.base import KeyGenInvocation, SigningBackend, SigningInvocation
from sshca.exceptions import ExternalToolError

logger = logging.getLogger(__name__)


class SshKeygenBackend(SigningBackend):
    """Signing backend backed by the ``ssh-keygen`` executable.

    Args:
        executable: ssh-keygen binary name or path.
        timeout_seconds: Per-invocation timeout. ``None`` waits forever;
            bounding latency is left to the caller.
    """

    name = "ssh-keygen"

    def __init__(
        self,
        executable: str = "ssh-keygen",
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.executable = executable
        self.timeout_seconds = timeout_seconds

    @property
    def available(self) -> bool:
        """Whether the executable can be found."""
        return shutil.which(self.executable) is not None

    def build_generate_command(self, invocation: KeyGenInvocation) -> list[str]:
        return [
            self.executable,
            "-q",
            "-t", invocation.key_type,
            "-b", str(invocation.bits),
            "-f", str(invocation.key_path),
            "-N", "",
            "-C", invocation.comment,
        ]

    def build_derive_command(self, private_key_path: Path) -> list[str]:
        return [self.executable, "-y", "-f", str(private_key_path)]

    def build_sign_command(self, invocation: SigningInvocation) -> list[str]:
        cmd = [
            self.executable,
            "-s", str(invocation.ca_key_path),
            "-I", invocation.identity,
            "-n", invocation.principal_list,
            "-V", invocation.validity,
            "-z", invocation.serial_number,
        ]
        if invocation.host_certificate:
            cmd.append("-h")
        cmd.append(str(invocation.public_key_path))
        return cmd

    def generate_key(self, invocation: KeyGenInvocation) -> None:
        self._run(self.build_generate_command(invocation), "generate")

    def derive_public_key(self, private_key_path: Path) -> str:
        proc = self._run(self.build_derive_command(private_key_path), "derive")
        if not proc.stdout.strip():
            raise ExternalToolError("ssh-keygen produced no public key output")
        return proc.stdout

    def sign(self, invocation: SigningInvocation) -> Path:
        self._run(self.build_sign_command(invocation), "sign")
        return invocation.certificate_path

    def _run(self, cmd: list[str], operation: str) -> subprocess.CompletedProcess:
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                stdin=subprocess.DEVNULL,
            )
        except FileNotFoundError as exc:
            raise ExternalToolError(
                f"ssh-keygen executable not found: {self.executable}"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ExternalToolError(
                f"ssh-keygen {operation} timed out after {self.timeout_seconds}s"
            ) from exc

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            logger.error(
                "ssh-keygen %s failed with exit code %d: %s",
                operation,
                proc.returncode,
                stderr,
            )
            raise ExternalToolError(
                f"ssh-keygen {operation} failed with exit code {proc.returncode}",
                returncode=proc.returncode,
                stderr=stderr,
            )
        return proc
