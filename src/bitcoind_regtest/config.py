"""
Configuration management for the bitcoind regtest fixture.

Configuration Sources (in order of precedence):
1. Command line arguments (highest precedence)
2. Environment variables (BTC_* prefixed)
3. .env files (.env, .env.local)
4. Default values (lowest precedence)

Environment Variables:
- BTC_CONTAINER_NAME: Name of the bitcoind container
- BTC_IMAGE: Image reference (repository:tag)
- BTC_IMAGE_HASH: Expected image ID of newly created containers
- BTC_RPC_USER / BTC_RPC_PASSWORD / BTC_RPC_URL / BTC_RPC_WALLET: RPC settings
- BTC_NETWORK: mainnet, testnet, regtest or signet
- BTC_MIN_RELAY_TX_FEE / BTC_BLOCK_MIN_TX_FEE / BTC_FALLBACK_FEE: fee policy in BTC
- BTC_DEBUG_LEVEL: bitcoind -debug value
- BTC_P2P_PORT: Host port for the P2P interface
- BTC_DATA_DIR: Host directory mounted as the node data directory
- BTC_STOP_TIMEOUT: Seconds to wait for a graceful stop
- BTC_LOG_LEVEL / BTC_LOG_FILE: Logging
- BTC_DOCKER_HOST: Explicit Docker daemon URL (DOCKER_HOST and its TLS settings
  are otherwise read by the docker SDK itself)

Example Usage:
    from bitcoind_regtest.config import load_config
    from bitcoind_regtest import Bitcoind

    config = load_config()
    node = Bitcoind.from_config(config.bitcoind)
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv

from .logging_config import get_logger
from .models import BitcoindFlags, Network, RpcConfig
from .validation import (
    ValidationError,
    validate_container_name,
    validate_image_reference,
    validate_rpc_url,
)

logger = get_logger(__name__)


def default_rpc_config() -> RpcConfig:
    return RpcConfig(
        username="foo",
        password="rpcpassword",
        url="http://localhost:18443",
        wallet="mywallet",
        network=Network.REGTEST,
    )


@dataclass
class BitcoindConfig:
    """Everything needed to build a Bitcoind lifecycle manager."""
    container_name: str = "bitcoin-regtest"
    image: str = "bitcoin/bitcoin:29.1"
    image_hash: Optional[str] = None
    rpc_config: RpcConfig = field(default_factory=default_rpc_config)
    flags: BitcoindFlags = field(default_factory=BitcoindFlags)
    p2p_port: Optional[int] = None  # None = network default
    data_dir: Optional[str] = None
    stop_timeout: int = 10  # seconds
    docker_host: Optional[str] = None


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    """Main application configuration."""
    bitcoind: BitcoindConfig = field(default_factory=BitcoindConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    verbose: bool = False
    quiet: bool = False


class ConfigManager:
    """Configuration manager with support for multiple sources."""

    def __init__(self):
        self.config = AppConfig()
        self._env_cache: Dict[str, Any] = {}
        self._loaded_env_files: List[Path] = []

    def load_from_env_file(self, env_file: Union[str, Path]) -> None:
        """Load configuration from .env file."""
        env_path = Path(env_file)

        if not env_path.exists():
            logger.debug(f"Environment file {env_path} does not exist, skipping")
            return

        logger.info(f"Loading configuration from {env_path}")
        load_dotenv(env_path)
        self._loaded_env_files.append(env_path)

    def load_from_env_vars(self) -> None:
        """Load configuration from environment variables."""
        logger.debug("Loading configuration from environment variables")
        node = self.config.bitcoind

        node.container_name = self._get_env_var("BTC_CONTAINER_NAME", node.container_name)
        node.image = self._get_env_var("BTC_IMAGE", node.image)
        node.image_hash = self._get_env_var("BTC_IMAGE_HASH", node.image_hash)
        node.p2p_port = self._get_env_var("BTC_P2P_PORT", node.p2p_port, int)
        node.data_dir = self._get_env_var("BTC_DATA_DIR", node.data_dir)
        node.stop_timeout = self._get_env_var("BTC_STOP_TIMEOUT", node.stop_timeout, int)
        node.docker_host = self._get_env_var("BTC_DOCKER_HOST", node.docker_host)

        # RPC settings
        rpc = node.rpc_config
        node.rpc_config = replace(
            rpc,
            username=self._get_env_var("BTC_RPC_USER", rpc.username),
            password=self._get_env_var("BTC_RPC_PASSWORD", rpc.password),
            url=self._get_env_var("BTC_RPC_URL", rpc.url),
            wallet=self._get_env_var("BTC_RPC_WALLET", rpc.wallet),
            network=self._get_env_var("BTC_NETWORK", rpc.network, Network),
        )

        # Bitcoin Core flags
        flags = node.flags
        node.flags = replace(
            flags,
            min_relay_tx_fee=self._get_env_var("BTC_MIN_RELAY_TX_FEE", flags.min_relay_tx_fee, float),
            block_min_tx_fee=self._get_env_var("BTC_BLOCK_MIN_TX_FEE", flags.block_min_tx_fee, float),
            debug=self._get_env_var("BTC_DEBUG_LEVEL", flags.debug, int),
            fallback_fee=self._get_env_var("BTC_FALLBACK_FEE", flags.fallback_fee, float),
        )

        # Logging settings
        self.config.logging.level = self._get_env_var("BTC_LOG_LEVEL", self.config.logging.level)
        self.config.logging.file = self._get_env_var("BTC_LOG_FILE", self.config.logging.file)

        self.config.verbose = self._get_env_var("BTC_VERBOSE", self.config.verbose, bool)
        self.config.quiet = self._get_env_var("BTC_QUIET", self.config.quiet, bool)

    def update_from_cli_args(self, args: Any) -> None:
        """Update configuration from command line arguments."""
        logger.debug("Updating configuration from CLI arguments")

        if getattr(args, "container_name", None):
            self.config.bitcoind.container_name = args.container_name
        if getattr(args, "image", None):
            self.config.bitcoind.image = args.image

        if getattr(args, "verbose", False):
            self.config.verbose = True
            self.config.logging.level = "DEBUG"
        if getattr(args, "quiet", False):
            self.config.quiet = True
            self.config.logging.level = "ERROR"
        if getattr(args, "log_file", None):
            self.config.logging.file = args.log_file
        if getattr(args, "log_level", None):
            self.config.logging.level = args.log_level

    def _get_env_var(self, name: str, default: Any, var_type: type = str) -> Any:
        """Get environment variable with type conversion."""
        value = os.environ.get(name)
        if value is None:
            return default

        cache_key = f"{name}:{value}:{var_type.__name__}"
        if cache_key in self._env_cache:
            return self._env_cache[cache_key]

        try:
            if var_type == bool:
                lower_value = value.lower()
                if lower_value in ('true', '1', 'yes', 'on'):
                    parsed = True
                elif lower_value in ('false', '0', 'no', 'off'):
                    parsed = False
                else:
                    parsed = default
            elif var_type == Network:
                parsed = Network(value.strip().lower())
            elif var_type == int:
                parsed = int(value)
            elif var_type == float:
                parsed = float(value)
            else:
                parsed = value

            self._env_cache[cache_key] = parsed
            return parsed

        except (ValueError, TypeError):
            logger.warning(f"Invalid value for {name}={value}, using default {default}")
            return default

    def validate_config(self) -> List[str]:
        """Validate the current configuration and return any errors."""
        errors = []
        node = self.config.bitcoind

        for validator, value in (
            (validate_container_name, node.container_name),
            (validate_image_reference, node.image),
            (validate_rpc_url, node.rpc_config.url),
        ):
            try:
                validator(value)
            except ValidationError as e:
                errors.append(str(e))

        if node.p2p_port is not None and not 0 < node.p2p_port < 65536:
            errors.append("P2P port must be between 1 and 65535")

        if node.stop_timeout < 0:
            errors.append("Stop timeout cannot be negative")

        if node.rpc_config.network is not Network.REGTEST:
            logger.warning(
                f"Network is {node.rpc_config.network.value}; the fixture is meant for regtest usage"
            )

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.config.logging.level.upper() not in valid_log_levels:
            errors.append(f"Invalid log level '{self.config.logging.level}'. Valid options: {valid_log_levels}")

        return errors

    def get_summary(self) -> str:
        """Get a human-readable summary of the current configuration."""
        node = self.config.bitcoind
        lines = [
            "bitcoind Regtest Fixture Configuration",
            "=" * 40,
            f"Container: {node.container_name}",
            f"Image: {node.image}",
            f"Network: {node.rpc_config.network.value}",
            f"RPC URL: {node.rpc_config.url} (user: {node.rpc_config.username}, wallet: {node.rpc_config.wallet})",
            f"Launch Flags: {' '.join(node.flags.to_args())}",
            f"Stop Timeout: {node.stop_timeout}s",
            f"Log Level: {self.config.logging.level}",
        ]

        if node.image_hash:
            lines.append(f"Image Hash: {node.image_hash}")
        if node.p2p_port is not None:
            lines.append(f"P2P Port: {node.p2p_port}")
        if node.data_dir:
            lines.append(f"Data Dir: {node.data_dir}")
        if node.docker_host:
            lines.append(f"Docker Host: {node.docker_host}")
        if self.config.logging.file:
            lines.append(f"Log File: {self.config.logging.file}")

        return "\n".join(lines)

    def save_to_env_file(self, env_file: Union[str, Path], include_comments: bool = True) -> None:
        """Save current configuration to .env file."""
        env_path = Path(env_file)
        node = self.config.bitcoind

        lines = []
        if include_comments:
            lines.extend([
                "# bitcoind regtest fixture configuration",
                "# Generated automatically - edit as needed",
                "",
            ])

        lines.extend([
            f"BTC_CONTAINER_NAME={node.container_name}",
            f"BTC_IMAGE={node.image}",
            f"BTC_IMAGE_HASH={node.image_hash or ''}",
            f"BTC_P2P_PORT={node.p2p_port or ''}",
            f"BTC_DATA_DIR={node.data_dir or ''}",
            f"BTC_STOP_TIMEOUT={node.stop_timeout}",
            "",
        ])

        lines.extend([
            f"BTC_RPC_USER={node.rpc_config.username}",
            f"BTC_RPC_PASSWORD={node.rpc_config.password}",
            f"BTC_RPC_URL={node.rpc_config.url}",
            f"BTC_RPC_WALLET={node.rpc_config.wallet}",
            f"BTC_NETWORK={node.rpc_config.network.value}",
            "",
        ])

        lines.extend([
            f"BTC_MIN_RELAY_TX_FEE={node.flags.min_relay_tx_fee}",
            f"BTC_BLOCK_MIN_TX_FEE={node.flags.block_min_tx_fee}",
            f"BTC_DEBUG_LEVEL={node.flags.debug}",
            f"BTC_FALLBACK_FEE={node.flags.fallback_fee}",
            "",
        ])

        lines.extend([
            f"BTC_LOG_LEVEL={self.config.logging.level}",
            f"BTC_LOG_FILE={self.config.logging.file or ''}",
        ])

        env_path.write_text("\n".join(lines), encoding='utf-8')
        logger.info(f"Configuration saved to {env_path}")


# Global configuration instance
config_manager = ConfigManager()


def load_config(args: Optional[Any] = None) -> AppConfig:
    """
    Load configuration from all sources with proper precedence.

    Args:
        args: Optional command line arguments from argparse

    Returns:
        AppConfig: Fully loaded and validated configuration

    Raises:
        ValueError: If configuration validation fails
    """
    for config_file in (".env", ".env.local"):
        config_manager.load_from_env_file(config_file)

    config_manager.load_from_env_vars()

    if args:
        config_manager.update_from_cli_args(args)

    validation_errors = config_manager.validate_config()
    if validation_errors:
        logger.error("Configuration validation failed:")
        for error in validation_errors:
            logger.error(f"  - {error}")
        raise ValueError("Invalid configuration: " + "; ".join(validation_errors))

    logger.debug("Configuration loaded successfully")
    return config_manager.config


def get_config() -> AppConfig:
    """Get the current application configuration."""
    return config_manager.config


def reset_config() -> None:
    """Reset configuration to default values."""
    config_manager.config = AppConfig()
    config_manager._env_cache.clear()
    config_manager._loaded_env_files.clear()
    logger.debug("Configuration reset to defaults")
