# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/config/loader.py

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from devnetctl.errors import ConfigurationError
from .models import DeploymentMode, Settings, SetupConfig

log = logging.getLogger("devnetctl")

# Per-cloud terraform variables that must be present before apply/validate.
CLOUD_REQUIRED_VARS: Dict[str, Sequence[str]] = {
    "aws": ("TF_VAR_AWS_REGION", "TF_VAR_INSTANCE_TYPE"),
    "gcp": ("TF_VAR_GCP_REGION", "TF_VAR_MACHINE_TYPE"),
}

# Monitoring configs shipped next to the setup config; optional.
EXTRA_CONFIG_FILES = ("openmetrics-conf.yaml", "otel-config-dd.yaml")

_DEVNET_DIR = re.compile(r"^devnet-([A-Za-z0-9_]+)$")


def _devnet_id_from_cwd(cwd: Path) -> Optional[str]:
    m = _DEVNET_DIR.match(cwd.name)
    return m.group(1) if m else None


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    *,
    env_file: Optional[Path] = None,
    cwd: Optional[Path] = None,
) -> Settings:
    """
    Build Settings from the process environment merged with a .env file.

    The devnet id comes from DEVNET_ID or, failing that, from a working
    directory named devnet-<id> (deployments/devnet-<id>), in which case the
    workspace root is two levels up.
    """
    cwd = Path(cwd) if cwd else Path.cwd()
    dotenv: Dict[str, str] = {}

    env_file = Path(env_file) if env_file else cwd / ".env"
    if env_file.is_file():
        log.debug("Loading environment from %s", env_file)
        dotenv = {k: v for k, v in dotenv_values(env_file).items() if v is not None}

    # real environment wins over .env
    values: Dict[str, str] = dict(dotenv)
    values.update(dict(os.environ if environ is None else environ))

    cwd_id = _devnet_id_from_cwd(cwd)
    devnet_id = values.get("DEVNET_ID") or cwd_id
    if not devnet_id:
        raise ConfigurationError(
            "Cannot determine devnet id: set DEVNET_ID or run from deployments/devnet-<id>"
        )

    if values.get("DEVNET_WORKSPACE_ROOT"):
        workspace_root = Path(values["DEVNET_WORKSPACE_ROOT"])
    elif cwd_id:
        workspace_root = cwd.parent.parent
    else:
        workspace_root = cwd

    missing = [k for k in ("MATIC_CLI_REPO", "MATIC_CLI_BRANCH", "PEM_FILE_PATH") if not values.get(k)]
    if missing:
        raise ConfigurationError(f"Missing required environment: {', '.join(missing)}")

    try:
        return Settings(
            devnet_id=devnet_id,
            dockerized=values.get("TF_VAR_DOCKERIZED") == "yes",
            matic_cli_repo=values["MATIC_CLI_REPO"],
            matic_cli_branch=values["MATIC_CLI_BRANCH"],
            pem_file_path=Path(values["PEM_FILE_PATH"]),
            network=values.get("NETWORK") or None,
            workspace_root=workspace_root,
            cloud_env={k: v for k, v in values.items() if k.startswith("TF_VAR_")},
            dotenv=dotenv,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc


def validate_configs(settings: Settings, cloud: str) -> None:
    cloud = cloud.strip().lower()
    if cloud not in CLOUD_REQUIRED_VARS:
        raise ConfigurationError(
            f"Unsupported cloud '{cloud}'. Valid: {', '.join(sorted(CLOUD_REQUIRED_VARS))}"
        )

    errors: List[str] = []
    missing = [k for k in CLOUD_REQUIRED_VARS[cloud] if not settings.cloud_env.get(k)]
    if missing:
        errors.append(f"missing {cloud} variables: {', '.join(missing)}")
    if not settings.pem_file.is_file():
        errors.append(f"PEM_FILE_PATH {settings.pem_file} does not exist")

    if errors:
        raise ConfigurationError("Configuration invalid: " + "; ".join(errors))
    log.debug("Configuration valid for cloud %s", cloud)


def stage_config_files(settings: Settings) -> Path:
    """
    Copy the mode's setup config (and monitoring configs) into the
    deployment directory. Returns the path of the copied setup config.
    """
    src = settings.configs_dir / settings.mode.setup_config_name
    if not src.is_file():
        raise ConfigurationError(f"Setup config not found: {src}")

    settings.deployment_dir.mkdir(parents=True, exist_ok=True)
    dest = shutil.copy(src, settings.deployment_dir)

    for name in EXTRA_CONFIG_FILES:
        extra = settings.configs_dir / name
        if extra.is_file():
            shutil.copy(extra, settings.deployment_dir)
        else:
            log.warning("%s not found in %s, skipping", name, settings.configs_dir)

    return Path(dest)


def _load_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text())
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Setup config not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Setup config {path} is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Setup config {path} must be a mapping")
    return data


def load_setup_config(path: str | Path) -> SetupConfig:
    path = Path(path)
    try:
        return SetupConfig.model_validate(_load_yaml(path))
    except ValidationError as exc:
        raise ConfigurationError(f"Setup config {path} invalid: {exc}") from exc


def edit_setup_config(path: str | Path, mode: DeploymentMode, addresses: Sequence[str]) -> dict:
    """
    Rewrite the copied matic-cli setup config for this fleet.

    The first len(devnetBorUsers) addresses become bor hosts, the rest erigon
    hosts. Remote mode also points ethURL at the host node's ganache.
    """
    path = Path(path)
    doc = _load_yaml(path)
    cfg = load_setup_config(path)

    n_bor = len(cfg.devnet_bor_users)
    bor_hosts = list(addresses[:n_bor])
    erigon_hosts = list(addresses[n_bor:])

    doc["devnetType"] = mode.config_prefix
    doc["devnetBorHosts"] = ",".join(bor_hosts)
    doc["devnetErigonHosts"] = ",".join(erigon_hosts)
    if mode is DeploymentMode.REMOTE and addresses:
        doc["ethURL"] = f"http://{addresses[0]}:9545"

    path.write_text(yaml.safe_dump(doc, sort_keys=False))
    log.debug("Rewrote %s (bor=%s erigon=%s)", path, bor_hosts, erigon_hosts)
    return doc
