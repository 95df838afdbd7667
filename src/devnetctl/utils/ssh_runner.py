# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/utils/ssh_runner.py

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Optional

import paramiko


class SSHCommandError(RuntimeError):
    def __init__(self, cmd: str, rc: int, stderr: str = ""):
        self.cmd = cmd
        self.rc = rc
        self.stderr = stderr
        super().__init__(f"command exited with rc={rc}: {cmd}")


def sftp_path(remote_path: str) -> str:
    """
    SFTP does not expand '~'; paths relative to the session start in the
    login's home directory, so '~/x' becomes 'x'.
    """
    if remote_path == "~":
        return "."
    if remote_path.startswith("~/"):
        return remote_path[2:]
    return remote_path


class SSHRunner:
    def __init__(self, client: paramiko.SSHClient):
        self.client = client

    def run(
        self,
        cmd: str,
        *,
        timeout: Optional[int] = None,
    ) -> tuple[int, str, str]:
        # login shell so ~/.bashrc, nvm and go paths are visible
        final_cmd = f"bash -lc {shlex.quote(cmd)}"
        stdin, stdout, stderr = self.client.exec_command(final_cmd, timeout=timeout)
        out = stdout.read().decode("utf-8", "replace")
        err = stderr.read().decode("utf-8", "replace")
        rc = stdout.channel.recv_exit_status()
        return rc, out, err

    def put_file(self, local_path: str | Path, remote_path: str) -> None:
        sftp = self.client.open_sftp()
        try:
            sftp.put(str(local_path), sftp_path(str(remote_path)))
        finally:
            sftp.close()

    def close(self) -> None:
        self.client.close()
