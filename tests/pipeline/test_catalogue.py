from pathlib import Path

import pytest

from devnetctl.config.models import Settings
from devnetctl.fleet.tasks import Pause, RemoteCommand, RemoteTransfer
from devnetctl.pipeline import catalogue
from devnetctl.topology.models import RoleAssignment

HOST = RoleAssignment(login="ubuntu", address="h0", position=0, is_host_node=True)
WORKER = RoleAssignment(login="bor1", address="w1", position=1)


def _settings(tmp_path: Path, *, dockerized=False, network=None) -> Settings:
    return Settings(
        devnet_id="7",
        dockerized=dockerized,
        matic_cli_repo="https://github.com/maticnetwork/matic-cli.git",
        matic_cli_branch="master",
        pem_file_path=tmp_path / "key.pem",
        network=network,
        workspace_root=tmp_path,
    )


def _commands(chain):
    return [t.command for t in chain.tasks if isinstance(t, RemoteCommand)]


def test_install_worker_gets_common_packages_only(tmp_path):
    chain = catalogue.install_chain(WORKER, _settings(tmp_path, dockerized=True))
    cmds = _commands(chain)
    assert cmds[0] == 'echo "bor1 ALL=(ALL) NOPASSWD:ALL" | sudo tee -a /etc/sudoers'
    assert "sudo apt install rabbitmq-server -y" in cmds
    assert "sudo snap install solc" not in cmds
    assert not any("docker" in c for c in cmds)

    transfers = [t for t in chain.tasks if isinstance(t, RemoteTransfer)]
    assert len(transfers) == 1
    assert transfers[0].remote_path == "~/cert.pem"
    assert transfers[0].local_path == tmp_path / "key.pem"


def test_install_host_adds_host_packages_and_docker_when_dockerized(tmp_path):
    cmds = _commands(catalogue.install_chain(HOST, _settings(tmp_path, dockerized=True)))
    assert "sudo npm install -g ganache -y" in cmds
    assert "sudo usermod -aG docker ubuntu" in cmds
    # host extras come after the common packages
    assert cmds.index("sudo apt install rabbitmq-server -y") < cmds.index("sudo snap install solc")


def test_install_host_skips_docker_in_remote_mode(tmp_path):
    cmds = _commands(catalogue.install_chain(HOST, _settings(tmp_path)))
    assert "sudo snap install solc" in cmds
    assert not any("docker" in c for c in cmds)


def test_prepare_toolchain_uses_repo_and_branch(tmp_path):
    cmds = _commands(catalogue.prepare_toolchain_chain(HOST, _settings(tmp_path)))
    assert cmds[0].startswith("cd ~ && git clone https://github.com/maticnetwork/matic-cli.git")
    assert "git checkout master" in cmds[1]
    assert cmds[2] == "cd ~/matic-cli && npm i"


def test_cleanup_is_tolerant_of_missing_targets():
    for target in (HOST, WORKER):
        for cmd in _commands(catalogue.cleanup_chain(target)):
            if "systemctl stop" in cmd:
                assert "|| echo" in cmd
            else:
                assert cmd.startswith("sudo rm -rf ")


def test_cleanup_host_only_steps():
    host_cmds = _commands(catalogue.cleanup_chain(HOST))
    worker_cmds = _commands(catalogue.cleanup_chain(WORKER))
    assert "sudo rm -rf ~/matic-cli/devnet" in host_cmds
    assert any("ganache.service" in c for c in host_cmds)
    assert not any("ganache" in c or "matic-cli" in c for c in worker_cmds)
    for svc in ("heimdalld", "bor", "erigon"):
        assert any(f"systemctl stop {svc}.service" in c for c in worker_cmds)


def test_docker_setup_runs_containers_contracts_and_ipc_checks(tmp_path):
    chain = catalogue.setup_chain(HOST, _settings(tmp_path, dockerized=True))
    cmds = _commands(chain)
    joined = "\n".join(cmds)

    for script in (
        "docker-ganache-start.sh",
        "docker-heimdall-start-all.sh",
        "docker-bor-setup.sh",
        "docker-bor-start-all.sh",
        "ganache-deployment-bor.sh",
        "ganache-deployment-sync.sh",
    ):
        assert script in joined
    assert "-c ../configs/devnet/docker-setup-config.yaml" in joined
    assert "admin.peers" in cmds[-2]
    assert "eth.blockNumber" in cmds[-1]

    pauses = [t.seconds for t in chain.tasks if isinstance(t, Pause)]
    assert pauses == [60, 60, 60]


def test_docker_setup_on_live_network_skips_contracts(tmp_path):
    chain = catalogue.setup_chain(HOST, _settings(tmp_path, dockerized=True, network="mainnet"))
    joined = "\n".join(_commands(chain))
    assert "ganache-deployment" not in joined
    assert "admin.peers" in joined and "eth.blockNumber" in joined
    assert [t.seconds for t in chain.tasks if isinstance(t, Pause)] == [60]


@pytest.mark.parametrize("network,deploys", [(None, True), ("mumbai", False)])
def test_remote_setup(tmp_path, network, deploys):
    settings = _settings(tmp_path, network=network)
    chain = catalogue.setup_chain(HOST, settings)
    cmds = _commands(chain)
    joined = "\n".join(cmds)

    setup_cmds = [c for c in cmds if "matic-cli setup devnet" in c]
    assert setup_cmds == [
        "cd ~/matic-cli/devnet && ../bin/matic-cli setup devnet -c ../configs/devnet/remote-setup-config.yaml"
    ]
    assert "docker" not in joined
    assert ("ganache-deployment-bor.sh" in joined) is deploys
    assert ("ganache-deployment-sync.sh" in joined) is deploys

    transfer = next(t for t in chain.tasks if isinstance(t, RemoteTransfer))
    assert transfer.local_path == settings.setup_config_path
    assert transfer.remote_path == "~/matic-cli/configs/devnet/remote-setup-config.yaml"


def test_keep_alive_chain_is_available_but_separate(tmp_path):
    cmds = _commands(catalogue.keep_ssh_alive_chain(HOST))
    assert cmds[-1] == "sudo systemctl restart ssh"
    install = _commands(catalogue.install_chain(HOST, _settings(tmp_path)))
    assert "sudo systemctl restart ssh" not in install
