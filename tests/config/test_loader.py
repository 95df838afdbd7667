from pathlib import Path
import textwrap

import pytest
import yaml

from devnetctl.config.loader import (
    edit_setup_config,
    load_settings,
    load_setup_config,
    stage_config_files,
    validate_configs,
)
from devnetctl.config.models import DeploymentMode
from devnetctl.errors import ConfigurationError

BASE_ENV = {
    "MATIC_CLI_REPO": "https://example.test/matic-cli.git",
    "MATIC_CLI_BRANCH": "master",
    "PEM_FILE_PATH": "/keys/devnet.pem",
}


def test_load_settings_from_environment(tmp_path: Path):
    env = {**BASE_ENV, "DEVNET_ID": "3", "TF_VAR_DOCKERIZED": "yes", "TF_VAR_AWS_REGION": "us-east-1"}
    s = load_settings(env, cwd=tmp_path)
    assert s.devnet_id == "3"
    assert s.mode is DeploymentMode.DOCKERIZED
    assert s.live_network is False
    assert s.workspace_root == tmp_path
    assert s.deployment_dir == tmp_path / "deployments" / "devnet-3"
    assert s.setup_config_path.name == "docker-setup-config.yaml"
    assert s.cloud_env == {"TF_VAR_DOCKERIZED": "yes", "TF_VAR_AWS_REGION": "us-east-1"}


def test_devnet_id_from_working_directory(tmp_path: Path):
    cwd = tmp_path / "deployments" / "devnet-12"
    cwd.mkdir(parents=True)
    s = load_settings({**BASE_ENV, "NETWORK": "mumbai"}, cwd=cwd)
    assert s.devnet_id == "12"
    assert s.workspace_root == tmp_path
    assert s.mode is DeploymentMode.REMOTE
    assert s.live_network is True


def test_dotenv_file_is_merged_and_environment_wins(tmp_path: Path):
    (tmp_path / ".env").write_text(
        "DEVNET_ID=5\nMATIC_CLI_BRANCH=from-dotenv\nTF_VAR_DOCKERIZED=yes\n"
    )
    env = {k: v for k, v in BASE_ENV.items() if k != "MATIC_CLI_BRANCH"}
    env["DEVNET_ID"] = "9"
    s = load_settings(env, cwd=tmp_path)
    assert s.devnet_id == "9"
    assert s.matic_cli_branch == "from-dotenv"
    assert s.dockerized is True


def test_missing_required_environment(tmp_path: Path):
    with pytest.raises(ConfigurationError) as ei:
        load_settings({"DEVNET_ID": "1"}, cwd=tmp_path)
    assert "MATIC_CLI_REPO" in str(ei.value)


def test_missing_devnet_id(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        load_settings(dict(BASE_ENV), cwd=tmp_path)


def _settings(tmp_path, **extra):
    pem = tmp_path / "key.pem"
    pem.write_text("KEY")
    env = {**BASE_ENV, "DEVNET_ID": "1", "PEM_FILE_PATH": str(pem), **extra}
    return load_settings(env, cwd=tmp_path)


def test_validate_configs(tmp_path: Path):
    s = _settings(tmp_path, TF_VAR_AWS_REGION="eu-west-1", TF_VAR_INSTANCE_TYPE="t2.large")
    validate_configs(s, "aws")

    with pytest.raises(ConfigurationError) as ei:
        validate_configs(s, "gcp")
    assert "TF_VAR_GCP_REGION" in str(ei.value)

    with pytest.raises(ConfigurationError):
        validate_configs(s, "azure")


def test_validate_configs_requires_pem_file(tmp_path: Path):
    s = _settings(tmp_path, TF_VAR_AWS_REGION="x", TF_VAR_INSTANCE_TYPE="y")
    (tmp_path / "key.pem").unlink()
    with pytest.raises(ConfigurationError) as ei:
        validate_configs(s, "aws")
    assert "PEM_FILE_PATH" in str(ei.value)


def test_stage_and_edit_setup_config(tmp_path: Path):
    s = _settings(tmp_path)
    configs = tmp_path / "configs" / "devnet"
    configs.mkdir(parents=True)
    (configs / "remote-setup-config.yaml").write_text(textwrap.dedent("""
        ethHostUser: ubuntu
        devnetBorUsers: ubuntu,ubuntu
        devnetErigonUsers: ubuntu
        borChainId: 15001
    """))

    copied = stage_config_files(s)
    assert copied == s.setup_config_path

    edit_setup_config(copied, s.mode, ["h0", "h1", "h2"])
    doc = yaml.safe_load(copied.read_text())
    assert doc["devnetBorHosts"] == "h0,h1"
    assert doc["devnetErigonHosts"] == "h2"
    assert doc["devnetType"] == "remote"
    assert doc["ethURL"] == "http://h0:9545"
    assert doc["borChainId"] == 15001

    # the template in configs/ is untouched
    assert "devnetBorHosts" not in (configs / "remote-setup-config.yaml").read_text()


def test_stage_config_files_requires_template(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        stage_config_files(_settings(tmp_path))


def test_load_setup_config_parses_user_lists(tmp_path: Path):
    f = tmp_path / "docker-setup-config.yaml"
    f.write_text("ethHostUser: ubuntu\ndevnetBorUsers: a, b c\n")
    cfg = load_setup_config(f)
    assert cfg.eth_host_user == "ubuntu"
    assert cfg.devnet_bor_users == ["a", "b", "c"]
    assert cfg.devnet_erigon_users == []


def test_load_setup_config_requires_host_user(tmp_path: Path):
    f = tmp_path / "docker-setup-config.yaml"
    f.write_text("devnetBorUsers: a\n")
    with pytest.raises(ConfigurationError):
        load_setup_config(f)
