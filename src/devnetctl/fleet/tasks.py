# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/fleet/tasks.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from devnetctl.remote.executor import RemoteExecutor
from devnetctl.topology.models import RoleAssignment

log = logging.getLogger("devnetctl")


@dataclass(frozen=True)
class RemoteCommand:
    description: str
    command: str
    retries: Optional[int] = None   # None -> executor default

    def run(self, target: RoleAssignment, executor: RemoteExecutor, sleep: Callable[[float], None]) -> None:
        executor.run_command(target.identity, self.command, self.retries)


@dataclass(frozen=True)
class RemoteTransfer:
    description: str
    local_path: Union[str, Path]
    remote_path: str
    retries: Optional[int] = None

    def run(self, target: RoleAssignment, executor: RemoteExecutor, sleep: Callable[[float], None]) -> None:
        executor.run_transfer(self.local_path, f"{target.identity}:{self.remote_path}", self.retries)


@dataclass(frozen=True)
class Pause:
    """Flat wait inside a chain. Not a health check."""
    description: str
    seconds: float

    def run(self, target: RoleAssignment, executor: RemoteExecutor, sleep: Callable[[float], None]) -> None:
        sleep(self.seconds)


RemoteTask = Union[RemoteCommand, RemoteTransfer, Pause]


@dataclass
class HostTaskChain:
    """
    Ordered tasks for one host. A task only starts once the previous one
    succeeded; the first failure stops the chain.
    """
    target: RoleAssignment
    tasks: List[RemoteTask] = field(default_factory=list)

    def command(self, description: str, command: str) -> "HostTaskChain":
        self.tasks.append(RemoteCommand(description, command))
        return self

    def transfer(self, description: str, local_path: Union[str, Path], remote_path: str) -> "HostTaskChain":
        self.tasks.append(RemoteTransfer(description, local_path, remote_path))
        return self

    def pause(self, description: str, seconds: float) -> "HostTaskChain":
        self.tasks.append(Pause(description, seconds))
        return self

    def extend(self, other: "HostTaskChain") -> "HostTaskChain":
        self.tasks.extend(other.tasks)
        return self

    def run(self, executor: RemoteExecutor, sleep: Callable[[float], None]) -> None:
        for task in self.tasks:
            log.info("📍[%s] %s", self.target.identity, task.description)
            task.run(self.target, executor, sleep)
