"""
Value objects describing a bitcoind regtest node.

RpcConfig describes how an RPC client will later reach the node, BitcoindFlags
holds the Bitcoin Core policy knobs that become container launch arguments.
Both are immutable and compare by value.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union
from urllib.parse import urlparse


class Network(str, Enum):
    """Bitcoin Core chain selection."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    REGTEST = "regtest"
    SIGNET = "signet"

    @property
    def chain_arg(self) -> Optional[str]:
        """bitcoind argument selecting this chain (mainnet needs none)."""
        if self is Network.MAINNET:
            return None
        return f"-{self.value}"

    @property
    def default_rpc_port(self) -> int:
        return _DEFAULT_PORTS[self][0]

    @property
    def default_p2p_port(self) -> int:
        return _DEFAULT_PORTS[self][1]


_DEFAULT_PORTS = {
    Network.MAINNET: (8332, 8333),
    Network.TESTNET: (18332, 18333),
    Network.REGTEST: (18443, 18444),
    Network.SIGNET: (38332, 38333),
}


class ContainerState(str, Enum):
    """Lifecycle state of a managed container, as last observed."""

    NOT_CREATED = "not-created"
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RpcConfig:
    """Connection settings handed to the RPC client once the node is up."""

    username: str
    password: str
    url: str
    wallet: str
    network: Network = Network.REGTEST

    @property
    def rpc_port(self) -> int:
        """Port from the URL, or the network default when the URL has none."""
        port = urlparse(self.url).port
        return port if port is not None else self.network.default_rpc_port

    def __repr__(self) -> str:
        return (
            f"RpcConfig(username={self.username!r}, password='****', url={self.url!r}, "
            f"wallet={self.wallet!r}, network={self.network.value!r})"
        )


def format_btc_amount(value: Union[float, int, Decimal]) -> str:
    """Render a BTC amount in plain decimal notation (bitcoind rejects 1e-05)."""
    amount = Decimal(str(value))
    text = format(amount, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


@dataclass(frozen=True)
class BitcoindFlags:
    """Bitcoin Core runtime policy passed on the container command line.

    Values are not range checked here; bitcoind itself rejects bad values at
    startup, which surfaces as a start failure.
    """

    min_relay_tx_fee: float = 0.00001
    block_min_tx_fee: float = 0.00001
    debug: int = 1
    fallback_fee: float = 0.0002

    def to_args(self) -> List[str]:
        return [
            f"-minrelaytxfee={format_btc_amount(self.min_relay_tx_fee)}",
            f"-blockmintxfee={format_btc_amount(self.block_min_tx_fee)}",
            f"-debug={int(self.debug)}",
            f"-fallbackfee={format_btc_amount(self.fallback_fee)}",
        ]
