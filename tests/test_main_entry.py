"""Test the main entry point."""

import bitcoind_regtest.__main__


class TestMainEntry:
    """Test the main entry point (__main__.py)."""

    def test_main_module_import(self):
        assert hasattr(bitcoind_regtest.__main__, 'main')
        assert callable(bitcoind_regtest.__main__.main)
