"""Shared fixtures and configuration for tests."""

from typing import Callable, Generator
from unittest.mock import MagicMock

import pytest
from docker.errors import NotFound

from bitcoind_regtest.bitcoind import Bitcoind
from bitcoind_regtest.models import BitcoindFlags, Network, RpcConfig


def make_container(
    status: str = "created",
    container_id: str = "c0ffee",
    image_id: str = "sha256:" + "ab" * 32,
) -> MagicMock:
    """A docker SDK Container double whose start() brings it to running."""
    container = MagicMock()
    container.id = container_id
    container.status = status
    container.attrs = {"Image": image_id, "State": {"ExitCode": 0}}

    def _start() -> None:
        container.status = "running"

    container.start.side_effect = _start
    return container


@pytest.fixture
def container_factory() -> Callable[..., MagicMock]:
    return make_container


@pytest.fixture
def rpc_config() -> RpcConfig:
    return RpcConfig(
        username="bitcoin",
        password="password",
        url="http://localhost:18443",
        wallet="test",
        network=Network.REGTEST,
    )


@pytest.fixture
def docker_client() -> MagicMock:
    """Docker client double: daemon up, no container, image pull succeeds."""
    client = MagicMock()
    client.ping.return_value = True
    client.containers.get.side_effect = NotFound("No such container: test-node")
    client.containers.create.return_value = make_container()
    client.api.pull.return_value = iter([
        {"status": "Pulling from bitcoin/bitcoin", "id": "29.1"},
        {"status": "Downloading", "progress": "[=====>   ]"},
        {"status": "Status: Downloaded newer image for bitcoin/bitcoin:29.1"},
    ])
    return client


@pytest.fixture
def make_node(docker_client: MagicMock, rpc_config: RpcConfig) -> Callable[..., Bitcoind]:
    """Factory for managers bound to the docker client double."""

    def _make(flags: BitcoindFlags = None, **kwargs) -> Bitcoind:
        kwargs.setdefault("client", docker_client)
        kwargs.setdefault("startup_grace", 0)
        return Bitcoind("test-node", "bitcoin/bitcoin:29.1", rpc_config, flags, **kwargs)

    return _make


@pytest.fixture(autouse=True)
def reset_config() -> Generator[None, None, None]:
    """Reset the global config manager between tests to ensure clean state."""
    # Import here to avoid import-time side effects
    from bitcoind_regtest import config as config_module  # isort: skip

    original_config_manager = config_module.config_manager
    config_module.config_manager = config_module.ConfigManager()

    yield

    config_module.config_manager = original_config_manager
