"""Tests for the configuration value objects."""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from bitcoind_regtest.models import (
    BitcoindFlags,
    ContainerState,
    Network,
    RpcConfig,
    format_btc_amount,
)


class TestBitcoindFlags:
    """Test BitcoindFlags defaults and rendering."""

    def test_defaults(self):
        flags = BitcoindFlags()
        assert flags.min_relay_tx_fee == 0.00001
        assert flags.block_min_tx_fee == 0.00001
        assert flags.debug == 1
        assert flags.fallback_fee == 0.0002

    def test_explicit_values(self):
        flags = BitcoindFlags(min_relay_tx_fee=0.001, block_min_tx_fee=0.002, debug=0, fallback_fee=0.003)
        assert flags.min_relay_tx_fee == 0.001
        assert flags.block_min_tx_fee == 0.002
        assert flags.debug == 0
        assert flags.fallback_fee == 0.003

    def test_equality_by_value(self):
        assert BitcoindFlags() == BitcoindFlags(0.00001, 0.00001, 1, 0.0002)
        assert BitcoindFlags() != BitcoindFlags(debug=0)

    def test_immutable(self):
        flags = BitcoindFlags()
        with pytest.raises(FrozenInstanceError):
            flags.debug = 2

    def test_to_args(self):
        assert BitcoindFlags().to_args() == [
            "-minrelaytxfee=0.00001",
            "-blockmintxfee=0.00001",
            "-debug=1",
            "-fallbackfee=0.0002",
        ]

    def test_out_of_range_values_pass_through(self):
        args = BitcoindFlags(min_relay_tx_fee=-1, debug=99).to_args()
        assert "-minrelaytxfee=-1" in args
        assert "-debug=99" in args


class TestFormatBtcAmount:
    """BTC amounts must never use exponent notation."""

    @pytest.mark.parametrize("value,expected", [
        (0.00001, "0.00001"),
        (1e-08, "0.00000001"),
        (0.0002, "0.0002"),
        (1, "1"),
        (1.5, "1.5"),
        (0, "0"),
        (Decimal("0.00010000"), "0.0001"),
        (21000000, "21000000"),
    ])
    def test_format(self, value, expected):
        assert format_btc_amount(value) == expected


class TestRpcConfig:
    """Test RpcConfig behaviour."""

    def test_port_from_url(self):
        rpc = RpcConfig("user", "pass", "http://localhost:28443", "w")
        assert rpc.rpc_port == 28443

    def test_port_defaults_to_network(self):
        assert RpcConfig("user", "pass", "http://localhost", "w").rpc_port == 18443
        assert RpcConfig("user", "pass", "http://localhost", "w", Network.TESTNET).rpc_port == 18332

    def test_repr_masks_password(self):
        rpc = RpcConfig("user", "hunter2", "http://localhost:18443", "w")
        assert "hunter2" not in repr(rpc)
        assert "user" in repr(rpc)

    def test_equality_by_value(self):
        assert RpcConfig("u", "p", "http://h:1", "w") == RpcConfig("u", "p", "http://h:1", "w", Network.REGTEST)


class TestNetwork:
    """Test Network chain arguments and ports."""

    @pytest.mark.parametrize("network,arg,rpc,p2p", [
        (Network.MAINNET, None, 8332, 8333),
        (Network.TESTNET, "-testnet", 18332, 18333),
        (Network.REGTEST, "-regtest", 18443, 18444),
        (Network.SIGNET, "-signet", 38332, 38333),
    ])
    def test_network_properties(self, network, arg, rpc, p2p):
        assert network.chain_arg == arg
        assert network.default_rpc_port == rpc
        assert network.default_p2p_port == p2p

    def test_from_string(self):
        assert Network("regtest") is Network.REGTEST


def test_container_state_values():
    assert [state.value for state in ContainerState] == ["not-created", "created", "running", "stopped"]
