"""Property-based tests using Hypothesis."""

from decimal import Decimal
from unittest.mock import MagicMock

from docker.errors import NotFound
from hypothesis import given, settings, strategies as st

from bitcoind_regtest.bitcoind import Bitcoind
from bitcoind_regtest.models import BitcoindFlags, ContainerState, Network, RpcConfig, format_btc_amount
from bitcoind_regtest.validation import ValidationError, validate_container_name

amounts = st.decimals(min_value=0, max_value=21_000_000, places=8, allow_nan=False, allow_infinity=False)
container_names = st.from_regex(r"[a-zA-Z0-9][a-zA-Z0-9_.-]{1,40}", fullmatch=True)


class TestAmountFormattingHypothesis:
    """Rendered amounts stay in plain decimal notation and keep their value."""

    @given(amount=amounts)
    def test_no_exponent_and_value_preserved(self, amount):
        text = format_btc_amount(amount)

        assert "e" not in text.lower()
        assert Decimal(text) == amount

    @given(value=st.floats(min_value=0, max_value=1, allow_nan=False, allow_infinity=False))
    def test_floats_render_without_exponent(self, value):
        assert "e" not in format_btc_amount(value).lower()


class TestFlagsHypothesis:
    """Every flag field ends up on the bitcoind command line."""

    @given(
        min_relay=amounts,
        block_min=amounts,
        debug=st.integers(min_value=0, max_value=10),
        fallback=amounts,
    )
    def test_all_flags_rendered(self, min_relay, block_min, debug, fallback):
        args = BitcoindFlags(min_relay, block_min, debug, fallback).to_args()

        assert args == [
            f"-minrelaytxfee={format_btc_amount(min_relay)}",
            f"-blockmintxfee={format_btc_amount(block_min)}",
            f"-debug={debug}",
            f"-fallbackfee={format_btc_amount(fallback)}",
        ]


class TestContainerNameHypothesis:
    """Names accepted by Docker are accepted here."""

    @given(name=container_names)
    def test_docker_style_names_accepted(self, name):
        assert validate_container_name(name) == name

    @given(name=st.builds(lambda head, tail: head + tail, st.sampled_from("-_./"), st.text(max_size=20)))
    def test_bad_leading_character_rejected(self, name):
        try:
            validate_container_name(name)
        except ValidationError:
            return
        raise AssertionError(f"{name!r} should have been rejected")


class TestLifecycleHypothesis:
    """Stop without start never creates anything, whatever the name."""

    @settings(max_examples=25)
    @given(name=container_names, network=st.sampled_from(list(Network)))
    def test_new_then_stop_is_noop(self, name, network):
        client = MagicMock()
        client.containers.get.side_effect = NotFound("No such container")
        rpc = RpcConfig("bitcoin", "password", "http://localhost:18443", "test", network)
        node = Bitcoind.new(name, "bitcoin/bitcoin:29.1", rpc, client=client)

        node.stop()

        client.containers.create.assert_not_called()
        client.api.pull.assert_not_called()
        assert node.state is ContainerState.NOT_CREATED
