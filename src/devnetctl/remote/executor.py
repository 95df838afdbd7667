# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/remote/executor.py
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional, Tuple

import paramiko

from devnetctl.errors import RemoteExecutionError
from devnetctl.utils.retry import RetryError, retry
from devnetctl.utils.ssh import open_ssh
from devnetctl.utils.ssh_runner import SSHCommandError

log = logging.getLogger("devnetctl")

# Total attempts per remote command/transfer, shared by every task.
MAX_RETRIES = 5
RETRY_DELAY_SECONDS = 5.0

_TRANSPORT_ERRORS = (SSHCommandError, paramiko.SSHException, OSError)


def parse_identity(identity: str) -> Tuple[str, str]:
    """Split 'login@address' into (login, address)."""
    login, sep, address = identity.partition("@")
    if not sep or not login or not address:
        raise ValueError(f"connection identity must be 'login@address', got {identity!r}")
    return login, address


def parse_destination(destination: str) -> Tuple[str, str, str]:
    """Split 'login@address:path' into (login, address, path)."""
    identity, sep, remote_path = destination.partition(":")
    if not sep or not remote_path:
        raise ValueError(
            f"transfer destination must be 'login@address:path', got {destination!r}"
        )
    login, address = parse_identity(identity)
    return login, address, remote_path


class RemoteExecutor:
    """
    Runs one shell command or one file copy against one host, retrying up to
    the given budget. Every attempt opens its own SSH session.
    """

    def __init__(
        self,
        *,
        pkey_path: Optional[str | Path] = None,
        retries: int = MAX_RETRIES,
        delay: float = RETRY_DELAY_SECONDS,
        connect: Callable = open_ssh,
        connect_timeout: float = 20.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.pkey_path = pkey_path
        self.retries = retries
        self.delay = delay
        self.connect = connect
        self.connect_timeout = connect_timeout
        self.sleep = sleep

    def _open(self, login: str, address: str):
        return self.connect(
            login,
            address,
            pkey_path=self.pkey_path,
            connect_timeout=self.connect_timeout,
        )

    def _with_retry(self, fn: Callable[[], None], *, what: str, host: str, retries: int) -> None:
        def on_retry(attempt: int, exc: Exception) -> None:
            log.warning("[%s] attempt %d/%d failed: %s", host, attempt, retries, exc)

        wrapped = retry(
            retries=retries,
            delay=self.delay,
            retry_on=_TRANSPORT_ERRORS,
            on_retry=on_retry,
            sleep=self.sleep,
        )(fn)
        try:
            wrapped()
        except RetryError as exc:
            raise RemoteExecutionError(what, host, exc.attempts) from exc.__cause__

    def run_command(self, identity: str, command: str, retries: Optional[int] = None) -> None:
        login, address = parse_identity(identity)
        budget = self.retries if retries is None else retries

        def attempt() -> None:
            runner = self._open(login, address)
            try:
                log.debug("[%s] $ %s", identity, command)
                rc, out, err = runner.run(command)
                if out.strip():
                    log.debug("[%s] [stdout]\n%s", identity, out.rstrip())
                if err.strip():
                    log.debug("[%s] [stderr]\n%s", identity, err.rstrip())
                if rc != 0:
                    raise SSHCommandError(command, rc, err)
            finally:
                runner.close()

        self._with_retry(attempt, what=command, host=identity, retries=budget)

    def run_transfer(
        self,
        local_path: str | Path,
        destination: str,
        retries: Optional[int] = None,
    ) -> None:
        login, address, remote_path = parse_destination(destination)
        identity = f"{login}@{address}"
        budget = self.retries if retries is None else retries

        def attempt() -> None:
            runner = self._open(login, address)
            try:
                log.debug("[%s] put %s -> %s", identity, local_path, remote_path)
                runner.put_file(local_path, remote_path)
            finally:
                runner.close()

        self._with_retry(
            attempt,
            what=f"copy {local_path} -> {remote_path}",
            host=identity,
            retries=budget,
        )
