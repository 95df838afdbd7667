# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pathlib import Path
from typing import Optional

import paramiko

from devnetctl.utils.ssh_runner import SSHRunner


def _load_pkey(pkey_path: str | Path) -> Optional[paramiko.PKey]:
    for key_cls in (
        paramiko.RSAKey,
        paramiko.Ed25519Key,
        paramiko.ECDSAKey,
    ):
        try:
            return key_cls.from_private_key_file(str(pkey_path))
        except paramiko.SSHException:
            continue
    return None


def open_ssh(
    username: str,
    address: str,
    *,
    pkey_path: Optional[str | Path] = None,
    port: int = 22,
    connect_timeout: float = 20.0,
) -> SSHRunner:
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    pkey = _load_pkey(pkey_path) if pkey_path else None

    try:
        client.connect(
            hostname=address,
            port=port,
            username=username,
            pkey=pkey,
            timeout=connect_timeout,
            allow_agent=True,
            look_for_keys=pkey is None,
        )
    except Exception:
        client.close()
        raise

    return SSHRunner(client)
