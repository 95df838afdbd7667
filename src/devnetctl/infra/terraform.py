# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/infra/terraform.py
from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional

from devnetctl.errors import InfrastructureError
from devnetctl.topology.resolver import split_to_array

log = logging.getLogger("devnetctl")


@dataclass
class InfrastructureOutputs:
    addresses: List[str] = field(default_factory=list)
    instance_ids: List[str] = field(default_factory=list)
    cloud: str = ""


def _value(outputs: dict, key: str) -> Any:
    try:
        return outputs[key]["value"]
    except (KeyError, TypeError) as exc:
        raise InfrastructureError(f"terraform output is missing '{key}.value'") from exc


def parse_outputs(raw: str) -> InfrastructureOutputs:
    """Parse `terraform output --json`; every value is wrapped as {"value": ...}."""
    try:
        outputs = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InfrastructureError(f"terraform output is not valid JSON: {exc}") from exc

    cloud = _value(outputs, "cloud")
    if isinstance(cloud, list):
        cloud = ",".join(str(c) for c in cloud)

    return InfrastructureOutputs(
        addresses=split_to_array(_value(outputs, "instance_dns_ips")),
        instance_ids=split_to_array(_value(outputs, "instance_ids")),
        cloud=str(cloud),
    )


class TerraformRunner:
    """
    Thin wrapper over the terraform CLI for one devnet deployment directory.

    `env` is the full environment terraform runs with (TF_VAR_* included);
    the current process environment is used when it is not given.
    """

    def __init__(
        self,
        deployment_dir: Path,
        *,
        binary: str = "terraform",
        env: Optional[Mapping[str, str]] = None,
        run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.deployment_dir = Path(deployment_dir)
        self.binary = binary
        self.env = dict(env) if env is not None else None
        self._run = run

    def _exec(self, args: List[str], *, capture: bool = False) -> subprocess.CompletedProcess:
        argv = [self.binary, f"-chdir={self.deployment_dir}", *args]
        log.debug("$ %s", " ".join(argv))
        try:
            cp = self._run(
                argv,
                check=False,
                text=True,
                env=dict(self.env) if self.env is not None else os.environ.copy(),
                capture_output=capture,
            )
        except OSError as exc:
            raise InfrastructureError(f"cannot execute {self.binary}: {exc}") from exc

        if cp.returncode != 0:
            detail = (cp.stderr or "").strip() if capture else ""
            raise InfrastructureError(
                f"terraform {' '.join(args)} failed (rc={cp.returncode})"
                + (f": {detail}" if detail else "")
            )
        return cp

    def select_workspace(self, name: str) -> None:
        log.info("📍Selecting terraform workspace %s...", name)
        self._exec(["workspace", "select", name])

    def apply(self, var_file: Optional[str] = "./secret.tfvars") -> None:
        log.info("📍Executing terraform apply...")
        args = ["apply", "-auto-approve"]
        if var_file:
            args.append(f"-var-file={var_file}")
        self._exec(args)

    def output(self) -> InfrastructureOutputs:
        log.info("📍Executing terraform output...")
        cp = self._exec(["output", "--json"], capture=True)
        return parse_outputs(cp.stdout)
