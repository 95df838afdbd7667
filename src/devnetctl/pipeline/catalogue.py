# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/devnetctl/pipeline/catalogue.py
"""
Per-host command catalogues for each pipeline stage.

Every function returns a fresh HostTaskChain; nothing here touches the
network. Commands are written to be re-runnable: removals use rm -rf and
service stops fall back to an echo when the unit is absent.
"""

from __future__ import annotations

from devnetctl.config.models import DeploymentMode, Settings
from devnetctl.fleet.tasks import HostTaskChain
from devnetctl.topology.models import RoleAssignment

NODE_VERSION = "16.20.2"
GO_INSTALL_SCRIPT = "https://raw.githubusercontent.com/maticnetwork/node-ansible/master/go-install.sh"
TOOLCHAIN_DIR = "~/matic-cli"
DEVNET_DIR = f"{TOOLCHAIN_DIR}/devnet"

# node-process services stopped on every host during cleanup
NODE_SERVICES = ("heimdalld", "bor", "erigon")
NODE_DATA_DIRS = ("~/.bor", "/var/lib/heimdall", "~/data", "~/node")

CONTRACT_DEPLOY_WAIT_SECONDS = 60
IPC_CHECK_WAIT_SECONDS = 60
BOR_IPC = "/root/.bor/data/bor.ipc"


def _stop_service(name: str) -> str:
    return f"sudo systemctl stop {name}.service || echo '{name} not running on current machine...'"


# ------------------------------------------------------------------------------
# Install
# ------------------------------------------------------------------------------

def keep_ssh_alive_chain(target: RoleAssignment) -> HostTaskChain:
    """
    Raise sshd keep-alive limits and restart sshd.

    Not wired into the default pipeline. Restarting sshd while other
    sessions to the same host are open (one per attempt, plus any sibling
    stage work) has not been shown to be safe.
    """
    config = r"TCPKeepAlive no\nClientAliveInterval 30\nClientAliveCountMax 240\n"
    return (
        HostTaskChain(target)
        .command(
            "Modifying ssh config in instance...",
            f"printf '{config}' | sudo tee -a /etc/ssh/sshd_config > /dev/null && sudo sshd -t",
        )
        .command("Restarting ssh service...", "sudo systemctl restart ssh")
    )


def cert_and_permissions_chain(target: RoleAssignment, settings: Settings) -> HostTaskChain:
    return (
        HostTaskChain(target)
        .command(
            "Allowing user not to use password...",
            f'echo "{target.login} ALL=(ALL) NOPASSWD:ALL" | sudo tee -a /etc/sudoers',
        )
        .command("Give permissions to all users for root folder...", "sudo chmod 755 -R ~/")
        .transfer(f"Copying certificate to {target.identity}:~/cert.pem...", settings.pem_file, "~/cert.pem")
        .command(
            f"Adding ssh for {target.identity}:~/cert.pem...",
            'sudo chmod 700 ~/cert.pem && eval "$(ssh-agent -s)" && ssh-add ~/cert.pem && sudo chmod -R 700 ~/.ssh',
        )
    )


def common_packages_chain(target: RoleAssignment) -> HostTaskChain:
    return (
        HostTaskChain(target)
        .command("Running apt update...", "sudo apt update -y")
        .command("Installing build-essential...", "sudo apt install build-essential -y")
        .command("Installing jq...", "sudo apt install jq -y")
        .command(
            "Installing go...",
            f"wget -nc {GO_INSTALL_SCRIPT} && bash go-install.sh --remove && bash go-install.sh && source ~/.bashrc",
        )
        .command("Creating symlink for go...", "sudo ln -sf ~/.go/bin/go /usr/local/bin/go")
        .command("Installing rabbitmq...", "sudo apt install rabbitmq-server -y")
    )


def host_packages_chain(target: RoleAssignment) -> HostTaskChain:
    nvm_bin = f"~/.nvm/versions/node/v{NODE_VERSION}/bin"
    return (
        HostTaskChain(target)
        .command(
            "Installing nvm...",
            "curl https://raw.githubusercontent.com/creationix/nvm/master/install.sh | bash && "
            'export NVM_DIR="$HOME/.nvm" && '
            '. "$NVM_DIR/nvm.sh" && '
            f"nvm install {NODE_VERSION}",
        )
        .command("Installing solc...", "sudo snap install solc")
        .command("Installing python2...", "sudo apt install python2 -y")
        .command("Installing nodejs and npm...", "sudo apt install nodejs npm -y")
        .command(
            "Creating symlink for npm and node...",
            f"sudo ln -sf {nvm_bin}/npm /usr/bin/npm && "
            f"sudo ln -sf {nvm_bin}/node /usr/bin/node && "
            f"sudo ln -sf {nvm_bin}/npx /usr/bin/npx",
        )
        .command("Installing ganache...", "sudo npm install -g ganache -y")
    )


def docker_chain(target: RoleAssignment) -> HostTaskChain:
    return (
        HostTaskChain(target)
        .command(
            "Setting docker repository up...",
            "sudo apt-get update -y && sudo apt install apt-transport-https ca-certificates curl software-properties-common -y",
        )
        .command(
            "Adding docker GPG key...",
            "curl -fsSL https://download.docker.com/linux/ubuntu/gpg | sudo apt-key add -",
        )
        .command(
            "Adding docker apt repository...",
            'sudo add-apt-repository "deb [arch=amd64] https://download.docker.com/linux/ubuntu focal stable"',
        )
        .command("Installing docker...", "sudo apt install docker-ce docker-ce-cli containerd.io -y")
        .command("Installing docker compose plugin...", "sudo apt install docker-compose-plugin -y")
        .command("Adding user to docker group...", f"sudo usermod -aG docker {target.login}")
    )


def install_chain(target: RoleAssignment, settings: Settings) -> HostTaskChain:
    chain = HostTaskChain(target)
    chain.extend(cert_and_permissions_chain(target, settings))
    chain.extend(common_packages_chain(target))

    if target.is_host_node:
        chain.extend(host_packages_chain(target))
        if settings.dockerized:
            chain.extend(docker_chain(target))

    return chain


# ------------------------------------------------------------------------------
# Toolchain
# ------------------------------------------------------------------------------

def prepare_toolchain_chain(target: RoleAssignment, settings: Settings) -> HostTaskChain:
    repo, branch = settings.matic_cli_repo, settings.matic_cli_branch
    return (
        HostTaskChain(target)
        .command(
            f"Git clone {repo} if does not exist on {target.identity}",
            f"cd ~ && git clone {repo} || (cd {TOOLCHAIN_DIR}; git fetch)",
        )
        .command(
            f"Git checkout {branch} and git pull on machine {target.identity}",
            f"cd {TOOLCHAIN_DIR} && git checkout {branch} && git pull || "
            f"(cd {TOOLCHAIN_DIR} && git stash && git stash drop && git pull)",
        )
        .command("Installing matic-cli dependencies...", f"cd {TOOLCHAIN_DIR} && npm i")
    )


# ------------------------------------------------------------------------------
# Cleanup
# ------------------------------------------------------------------------------

def cleanup_chain(target: RoleAssignment) -> HostTaskChain:
    where = f"on machine {target.identity} ..."
    chain = HostTaskChain(target)

    if target.is_host_node:
        chain.command(f"Removing old devnet (if present) {where}", f"sudo rm -rf {DEVNET_DIR}")
        chain.command(f"Stopping ganache (if present) {where}", _stop_service("ganache"))

    for service in NODE_SERVICES:
        chain.command(f"Stopping {service} (if present) {where}", _stop_service(service))

    for folder in NODE_DATA_DIRS:
        chain.command(f"Removing {folder} folder (if present) {where}", f"sudo rm -rf {folder}")

    return chain


# ------------------------------------------------------------------------------
# Setup
# ------------------------------------------------------------------------------

def _upload_setup_config_chain(target: RoleAssignment, settings: Settings) -> HostTaskChain:
    name = settings.mode.setup_config_name
    return (
        HostTaskChain(target)
        .command(
            "Creating devnet and removing default configs...",
            f"cd {TOOLCHAIN_DIR} && mkdir -p devnet && rm -f configs/devnet/{name}",
        )
        .transfer(
            f"Copying {settings.mode.config_prefix} matic-cli configurations...",
            settings.setup_config_path,
            f"{TOOLCHAIN_DIR}/configs/devnet/{name}",
        )
        .command(
            f"Executing {settings.mode.config_prefix} setup with matic-cli...",
            f"cd {DEVNET_DIR} && ../bin/matic-cli setup devnet -c ../configs/devnet/{name}",
        )
    )


def contract_deployment_chain(target: RoleAssignment) -> HostTaskChain:
    return (
        HostTaskChain(target)
        .pause("Waiting 60s before deploying contracts for bor...", CONTRACT_DEPLOY_WAIT_SECONDS)
        .command(
            f"Deploying contracts for bor on machine {target.identity} ...",
            f"cd {DEVNET_DIR} && bash ganache-deployment-bor.sh",
        )
        .pause("Waiting 60s before deploying state-sync contracts...", CONTRACT_DEPLOY_WAIT_SECONDS)
        .command(
            f"Deploying state-sync contracts on machine {target.identity} ...",
            f"cd {DEVNET_DIR} && bash ganache-deployment-sync.sh",
        )
    )


def _bor_attach(expr: str) -> str:
    return f"cd {DEVNET_DIR} && docker exec bor0 bash -c \"bor attach {BOR_IPC} -exec '{expr}'\""


def docker_setup_chain(target: RoleAssignment, settings: Settings) -> HostTaskChain:
    chain = _upload_setup_config_chain(target, settings)
    chain.command("Starting ganache...", f"cd {DEVNET_DIR} && bash docker-ganache-start.sh")
    chain.command("Starting heimdall...", f"cd {DEVNET_DIR} && bash docker-heimdall-start-all.sh")
    chain.command("Setting up bor...", f"cd {DEVNET_DIR} && bash docker-bor-setup.sh")
    chain.command("Starting bor...", f"cd {DEVNET_DIR} && bash docker-bor-start-all.sh")

    if not settings.live_network:
        chain.extend(contract_deployment_chain(target))

    chain.pause("Waiting 60s before bor ipc tests...", IPC_CHECK_WAIT_SECONDS)
    chain.command("Executing bor ipc tests: 1. Fetching admin.peers...", _bor_attach("admin.peers"))
    chain.command("Executing bor ipc tests: 2. Fetching eth.blockNumber...", _bor_attach("eth.blockNumber"))
    return chain


def remote_setup_chain(target: RoleAssignment, settings: Settings) -> HostTaskChain:
    chain = _upload_setup_config_chain(target, settings)
    if not settings.live_network:
        chain.extend(contract_deployment_chain(target))
    return chain


def setup_chain(target: RoleAssignment, settings: Settings) -> HostTaskChain:
    if settings.mode is DeploymentMode.DOCKERIZED:
        return docker_setup_chain(target, settings)
    return remote_setup_chain(target, settings)
