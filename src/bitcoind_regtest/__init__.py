"""
bitcoind regtest fixture

Manage the lifecycle of a single Bitcoin Core node running in a Docker
container: daemon check, image pull on demand, create/start with Bitcoin Core
policy flags, idempotent stop and explicit removal.

Requirements:
- Python 3.10+
- Docker installed and running
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .bitcoind import Bitcoind
from .config import BitcoindConfig
from .errors import (
    BitcoindError,
    CreateFailed,
    DaemonUnavailable,
    ImageHashMismatch,
    PullFailed,
    RemoveFailed,
    StartFailed,
    StopFailed,
)
from .models import BitcoindFlags, ContainerState, Network, RpcConfig
from .validation import ValidationError

__all__ = [
    "Bitcoind",
    "BitcoindConfig",
    "BitcoindError",
    "BitcoindFlags",
    "ContainerState",
    "CreateFailed",
    "DaemonUnavailable",
    "ImageHashMismatch",
    "Network",
    "PullFailed",
    "RemoveFailed",
    "RpcConfig",
    "StartFailed",
    "StopFailed",
    "ValidationError",
]
