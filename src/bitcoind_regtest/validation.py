"""
Input validation for the bitcoind regtest fixture.

These checks run when a lifecycle manager is constructed, so malformed
identifiers are rejected before the Docker daemon is ever contacted.
"""

import re
import urllib.parse


class ValidationError(Exception):
    """Exception raised when input validation fails."""
    pass


# Docker's own rule for container names
_CONTAINER_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]+$")

# repository[:tag] or repository@digest, with an optional registry host[:port]
_IMAGE_REFERENCE_RE = re.compile(
    r"^(?:[a-zA-Z0-9.-]+(?::[0-9]+)?/)?"
    r"[a-z0-9]+(?:[._-][a-z0-9]+)*(?:/[a-z0-9]+(?:[._-][a-z0-9]+)*)*"
    r"(?::[a-zA-Z0-9_][a-zA-Z0-9_.-]{0,127})?"
    r"(?:@sha256:[a-f0-9]{64})?$"
)


def validate_container_name(name: str) -> str:
    """
    Validate a Docker container name.

    Args:
        name: The container name to validate

    Returns:
        The validated name

    Raises:
        ValidationError: If the name is empty or not accepted by Docker
    """
    if not name or not name.strip():
        raise ValidationError("Container name cannot be empty")

    name = name.strip()

    if len(name) > 255:
        raise ValidationError("Container name is too long (maximum 255 characters)")

    if not _CONTAINER_NAME_RE.match(name):
        raise ValidationError(
            f"Invalid container name '{name}'. "
            "Only alphanumeric characters, underscores, dots and hyphens are allowed, "
            "and the name must start with an alphanumeric character."
        )

    return name


def validate_image_reference(image: str) -> str:
    """
    Validate a Docker image reference such as ``bitcoin/bitcoin:29.1``.

    Raises:
        ValidationError: If the reference is malformed
    """
    if not image or not image.strip():
        raise ValidationError("Image reference cannot be empty")

    image = image.strip()

    if not _IMAGE_REFERENCE_RE.match(image):
        raise ValidationError(f"Invalid image reference '{image}'")

    return image


def validate_rpc_url(url: str) -> str:
    """
    Validate the RPC base URL of a node.

    Raises:
        ValidationError: If the URL is not an http(s) URL with a host
    """
    if not url or not url.strip():
        raise ValidationError("RPC URL cannot be empty")

    url = url.strip()

    try:
        parsed = urllib.parse.urlparse(url)
        # Accessing .port raises ValueError for out of range ports
        parsed.port
    except ValueError as e:
        raise ValidationError(f"Invalid RPC URL format: {e}") from e

    if parsed.scheme not in ("http", "https"):
        raise ValidationError("RPC URL must start with 'http://' or 'https://'")

    if not parsed.hostname:
        raise ValidationError("RPC URL must include a host")

    return url
