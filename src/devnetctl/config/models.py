# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/config/models.py

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from devnetctl.topology.resolver import split_to_array


class DeploymentMode(str, Enum):
    DOCKERIZED = "dockerized"
    REMOTE = "remote"

    @property
    def config_prefix(self) -> str:
        """Prefix of the matic-cli setup config file for this mode."""
        return "docker" if self is DeploymentMode.DOCKERIZED else "remote"

    @property
    def setup_config_name(self) -> str:
        return f"{self.config_prefix}-setup-config.yaml"


class Settings(BaseModel):
    """
    Run-wide configuration, built once at startup from the environment and
    handed to the pipeline.
    """

    devnet_id: str
    dockerized: bool = False
    matic_cli_repo: str
    matic_cli_branch: str
    pem_file_path: Path
    network: Optional[str] = None        # set when deploying onto a live network
    workspace_root: Path = Field(default_factory=Path.cwd)
    cloud_env: dict = Field(default_factory=dict)
    dotenv: Dict[str, str] = Field(default_factory=dict)    # values read from .env

    @field_validator("devnet_id")
    @classmethod
    def _devnet_id_format(cls, v: str) -> str:
        if not re.fullmatch(r"[A-Za-z0-9_-]+", v):
            raise ValueError(f"invalid devnet id {v!r}")
        return v

    @property
    def mode(self) -> DeploymentMode:
        return DeploymentMode.DOCKERIZED if self.dockerized else DeploymentMode.REMOTE

    @property
    def live_network(self) -> bool:
        return bool(self.network)

    @property
    def deployment_dir(self) -> Path:
        return self.workspace_root / "deployments" / f"devnet-{self.devnet_id}"

    @property
    def configs_dir(self) -> Path:
        return self.workspace_root / "configs" / "devnet"

    @property
    def setup_config_path(self) -> Path:
        return self.deployment_dir / self.mode.setup_config_name

    @property
    def terraform_workspace(self) -> str:
        return f"devnet-{self.devnet_id}"

    @property
    def pem_file(self) -> Path:
        return Path(os.path.expanduser(str(self.pem_file_path)))

    def process_env(self, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Environment for child processes such as terraform: .env values
        under the real environment, which wins on conflicts.
        """
        env = dict(self.dotenv)
        env.update(os.environ if environ is None else environ)
        return env


class SetupConfig(BaseModel):
    """The fields of <mode>-setup-config.yaml the orchestrator reads."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    eth_host_user: str = Field(alias="ethHostUser")
    devnet_bor_users: List[str] = Field(default_factory=list, alias="devnetBorUsers")
    devnet_erigon_users: List[str] = Field(default_factory=list, alias="devnetErigonUsers")

    @field_validator("eth_host_user", mode="before")
    @classmethod
    def _non_empty_user(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("ethHostUser must not be empty")
        return str(v).strip()

    @field_validator("devnet_bor_users", "devnet_erigon_users", mode="before")
    @classmethod
    def _split_users(cls, v):
        return split_to_array(v)
