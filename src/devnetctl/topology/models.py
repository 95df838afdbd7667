# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/topology/models.py

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FleetAddress:
    """
    One provisioned instance as reported by terraform. Position 0 is the host node.
    """
    address: str
    position: int


@dataclass(frozen=True)
class RoleAssignment:
    login: str
    address: str
    position: int
    is_host_node: bool = False

    @property
    def identity(self) -> str:
        return f"{self.login}@{self.address}"

    def __str__(self) -> str:
        return f"{self.identity} (host)" if self.is_host_node else self.identity
