"""
Errors raised by the bitcoind container lifecycle manager.

Error Hierarchy:
- BitcoindError (base exception)
  - DaemonUnavailable: Docker daemon could not be reached
  - PullFailed: image pull failed, or the image is still missing after a pull
  - CreateFailed: container creation rejected for a reason other than a missing image
  - StartFailed: container exists but did not reach the running state
  - StopFailed: daemon rejected a stop request
  - RemoveFailed: daemon rejected a remove request
  - ImageHashMismatch: created container does not use the pinned image ID

Every error carries the container name and the operation that failed so a
failure can be diagnosed without reading the daemon logs.
"""

from typing import Optional


class BitcoindError(Exception):
    """Base exception for container lifecycle failures."""

    def __init__(self, message: str, container_name: Optional[str] = None, operation: Optional[str] = None):
        self.message = message
        self.container_name = container_name
        self.operation = operation
        super().__init__(self._render())

    def _render(self) -> str:
        if self.container_name and self.operation:
            return f"{self.operation} {self.container_name}: {self.message}"
        if self.container_name:
            return f"{self.container_name}: {self.message}"
        return self.message


class DaemonUnavailable(BitcoindError):
    """Raised when the Docker daemon does not answer a ping."""
    pass


class PullFailed(BitcoindError):
    """Raised when pulling the image fails."""
    pass


class CreateFailed(BitcoindError):
    """Raised when the daemon refuses to create the container."""
    pass


class StartFailed(BitcoindError):
    """Raised when the container does not enter the running state."""
    pass


class StopFailed(BitcoindError):
    """Raised when the daemon refuses to stop the container."""
    pass


class RemoveFailed(BitcoindError):
    """Raised when the daemon refuses to remove the container."""
    pass


class ImageHashMismatch(BitcoindError):
    """Raised when the created container's image ID differs from the pinned one."""

    def __init__(self, expected: str, found: str, container_name: Optional[str] = None):
        self.expected = expected
        self.found = found
        super().__init__(
            f"Image hash mismatch: expected {expected}, found {found}",
            container_name=container_name,
            operation="create",
        )
