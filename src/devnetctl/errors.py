# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/errors.py
from __future__ import annotations


class DevnetError(RuntimeError):
    """Base class for failures that abort a devnet run."""


class ConfigurationError(DevnetError):
    """Raised when required configuration is missing or invalid."""


class InfrastructureError(DevnetError):
    """Raised when terraform apply/output fails."""


class TopologyResolutionError(DevnetError):
    """Raised when the configured user lists cannot cover the fleet."""


class RemoteExecutionError(DevnetError):
    """Raised when a remote command or transfer exhausts its retry budget."""

    def __init__(self, command: str, host: str, attempts: int):
        self.command = command
        self.host = host
        self.attempts = attempts
        super().__init__(
            f"'{command}' failed on {host} after {attempts} attempt(s)"
        )
