"""
Lifecycle management for a single bitcoind regtest container.

A Bitcoind instance owns one named container created from one image. It is
cheap to construct (nothing talks to Docker until start/stop is called) and
every daemon call is a blocking call on the caller's thread.

State machine:
    not-created --start--> running --stop--> stopped --start--> running

Recovery rules:
- The daemon is pinged first; an unreachable daemon fails start immediately.
- A container that already carries our name is reused, whatever image or
  flags it was created with.
- A create that fails because the image is missing triggers exactly one pull
  followed by exactly one more create.
- A container that fails to start is left in place for inspection; stop and
  remove are the caller's cleanup tools.

Example Usage:
    from bitcoind_regtest import Bitcoind, Network, RpcConfig

    rpc = RpcConfig("bitcoin", "password", "http://localhost:18443", "test", Network.REGTEST)
    node = Bitcoind.new("test-node", "bitcoin/bitcoin:29.1", rpc)
    node.start()
    ...
    node.stop()
"""

import time
from typing import Any, Dict, List, Optional

import docker
from docker.errors import APIError, DockerException, ImageNotFound, NotFound
from docker.utils import parse_repository_tag
from requests.exceptions import RequestException

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
from .logging_config import get_logger
from .models import BitcoindFlags, ContainerState, RpcConfig
from .validation import validate_container_name, validate_image_reference, validate_rpc_url

logger = get_logger(__name__)

# Where the image keeps the node's data directory
CONTAINER_DATA_DIR = "/data"
DEFAULT_STOP_TIMEOUT = 10
DEFAULT_STARTUP_GRACE = 1.0
LOG_TAIL_LINES = 20

_DAEMON_ERRORS = (DockerException, RequestException)


class Bitcoind:
    """Creates, starts, stops and removes one bitcoind container."""

    def __init__(
        self,
        container_name: str,
        image: str,
        rpc_config: RpcConfig,
        flags: Optional[BitcoindFlags] = None,
        *,
        client: Optional[docker.DockerClient] = None,
        docker_host: Optional[str] = None,
        p2p_port: Optional[int] = None,
        data_dir: Optional[str] = None,
        image_hash: Optional[str] = None,
        stop_timeout: int = DEFAULT_STOP_TIMEOUT,
        startup_grace: float = DEFAULT_STARTUP_GRACE,
    ):
        """
        Record the container identity. No daemon I/O happens here.

        Args:
            container_name: Name of the Docker container, unique on the daemon
            image: Image reference, e.g. ``bitcoin/bitcoin:29.1``
            rpc_config: RPC settings; credentials become bitcoind arguments
            flags: Bitcoin Core policy flags (defaults when omitted)
            client: Docker client to use instead of one built from the environment
            docker_host: Daemon URL used when no client is given (docker.from_env() when omitted)
            p2p_port: Host port for the P2P interface (network default when omitted)
            data_dir: Host directory bind-mounted as the node's data directory
            image_hash: Expected image ID; a newly created container must use it
            stop_timeout: Seconds the daemon waits before killing on stop
            startup_grace: Seconds to wait after start before checking the container is up

        Raises:
            ValidationError: If the name, image reference or RPC URL is malformed
        """
        self.container_name = validate_container_name(container_name)
        self.image = validate_image_reference(image)
        validate_rpc_url(rpc_config.url)
        self.rpc_config = rpc_config
        self.flags = flags if flags is not None else BitcoindFlags()
        self.docker_host = docker_host
        self.p2p_port = p2p_port
        self.data_dir = data_dir
        self.image_hash = image_hash
        self.stop_timeout = stop_timeout
        self.startup_grace = startup_grace
        self.state = ContainerState.NOT_CREATED
        self.container_id: Optional[str] = None
        self._client = client

    @classmethod
    def new(cls, container_name: str, image: str, rpc_config: RpcConfig, **kwargs: Any) -> "Bitcoind":
        """Create a manager using the default bitcoind flags."""
        return cls(container_name, image, rpc_config, BitcoindFlags(), **kwargs)

    @classmethod
    def new_with_flags(
        cls, container_name: str, image: str, rpc_config: RpcConfig, flags: BitcoindFlags, **kwargs: Any
    ) -> "Bitcoind":
        """Create a manager with caller supplied bitcoind flags."""
        return cls(container_name, image, rpc_config, flags, **kwargs)

    @classmethod
    def from_config(cls, config: BitcoindConfig, **kwargs: Any) -> "Bitcoind":
        """Create a manager from the application configuration."""
        kwargs.setdefault("docker_host", config.docker_host)
        return cls(
            config.container_name,
            config.image,
            config.rpc_config,
            config.flags,
            p2p_port=config.p2p_port,
            data_dir=config.data_dir,
            image_hash=config.image_hash,
            stop_timeout=config.stop_timeout,
            **kwargs,
        )

    def __repr__(self) -> str:
        return f"Bitcoind(container_name={self.container_name!r}, image={self.image!r}, state={self.state.value!r})"

    def __enter__(self) -> "Bitcoind":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.stop()
            return
        # Let the body's exception propagate
        try:
            self.stop()
        except BitcoindError as e:
            logger.error(f"Failed to stop {self.container_name} after an error: {e}")

    # Launch configuration

    def launch_args(self) -> List[str]:
        """Command line passed to bitcoind inside the container."""
        args = []
        chain_arg = self.rpc_config.network.chain_arg
        if chain_arg:
            args.append(chain_arg)
        args.extend([
            "-server",
            "-printtoconsole",
            "-rpcallowip=0.0.0.0/0",
            "-rpcbind=0.0.0.0",
            f"-rpcuser={self.rpc_config.username}",
            f"-rpcpassword={self.rpc_config.password}",
            "-txindex=1",
        ])
        args.extend(self.flags.to_args())
        return args

    def container_ports(self) -> Dict[str, tuple]:
        """Port bindings in the form the docker SDK expects."""
        network = self.rpc_config.network
        p2p_host_port = self.p2p_port if self.p2p_port is not None else network.default_p2p_port
        return {
            f"{network.default_rpc_port}/tcp": ("0.0.0.0", self.rpc_config.rpc_port),
            f"{network.default_p2p_port}/tcp": ("0.0.0.0", p2p_host_port),
        }

    def container_volumes(self) -> Optional[Dict[str, Dict[str, str]]]:
        if not self.data_dir:
            return None
        return {self.data_dir: {"bind": CONTAINER_DATA_DIR, "mode": "rw"}}

    # Public lifecycle operations

    def start(self) -> None:
        """
        Start the bitcoind container, creating it (and pulling its image) if needed.

        Raises:
            DaemonUnavailable: If the Docker daemon cannot be reached
            PullFailed: If the image had to be pulled and the pull failed
            CreateFailed: If the daemon refused to create the container
            ImageHashMismatch: If the created container does not use the pinned image
            StartFailed: If the container did not reach the running state
        """
        logger.info("Checking if Docker daemon is active")
        client = self._get_client("start")
        self._ping(client)

        container = self._find_container(client, "start", StartFailed)
        if container is not None:
            self.container_id = container.id
            if container.status == "running":
                logger.info(f"Container {self.container_name} is already running")
                self.state = ContainerState.RUNNING
                return
            if container.status == "paused":
                logger.info(f"Unpausing container {self.container_name}")
                try:
                    container.unpause()
                except _DAEMON_ERRORS as e:
                    raise StartFailed(str(e), self.container_name, "unpause") from e
                self.state = ContainerState.RUNNING
                return
            logger.info(f"Restarting existing container {self.container_name} (status: {container.status})")
            self._start_container(container, failure_state=_state_from_status(container.status))
            return

        logger.info(f"Creating bitcoind container {self.container_name} from {self.image}")
        container = self._create_with_pull(client)
        self.container_id = container.id
        self.state = ContainerState.CREATED

        if self.image_hash:
            self._verify_image_hash(container)

        self._start_container(container, failure_state=ContainerState.CREATED)

    def stop(self) -> None:
        """
        Stop the container without removing it.

        Stopping a container that does not exist or is not running is a no-op.

        Raises:
            DaemonUnavailable: If the Docker daemon cannot be reached
            StopFailed: If the daemon refused to stop the container
        """
        logger.info(f"Stopping bitcoind container {self.container_name}")
        client = self._get_client("stop")
        container = self._find_container(client, "stop", StopFailed)
        if container is None:
            logger.debug(f"Container {self.container_name} does not exist, nothing to stop")
            self.state = ContainerState.NOT_CREATED
            self.container_id = None
            return

        self.container_id = container.id
        if container.status not in ("running", "paused", "restarting"):
            logger.debug(f"Container {self.container_name} is not running (status: {container.status})")
            self.state = ContainerState.STOPPED
            return

        try:
            container.stop(timeout=self.stop_timeout)
        except NotFound:
            logger.debug(f"Container {self.container_name} disappeared while stopping")
            self.state = ContainerState.NOT_CREATED
            self.container_id = None
            return
        except _DAEMON_ERRORS as e:
            raise StopFailed(str(e), self.container_name, "stop") from e

        self.state = ContainerState.STOPPED
        logger.info(f"Container {self.container_name} stopped")

    def remove(self) -> None:
        """
        Force-remove the container, stopping it first if it is running.

        Raises:
            DaemonUnavailable: If the Docker daemon cannot be reached
            RemoveFailed: If the daemon refused to remove the container
        """
        logger.info(f"Removing bitcoind container {self.container_name}")
        client = self._get_client("remove")
        container = self._find_container(client, "remove", RemoveFailed)
        if container is not None:
            try:
                container.remove(force=True)
            except NotFound:
                logger.debug(f"Container {self.container_name} already removed")
            except _DAEMON_ERRORS as e:
                raise RemoveFailed(str(e), self.container_name, "remove") from e
        self.state = ContainerState.NOT_CREATED
        self.container_id = None

    def refresh_state(self) -> ContainerState:
        """Ask the daemon for the container's status and record it."""
        client = self._get_client("inspect")
        container = self._find_container(client, "inspect")
        if container is None:
            self.state = ContainerState.NOT_CREATED
            self.container_id = None
        else:
            self.container_id = container.id
            self.state = _state_from_status(container.status)
        return self.state

    def is_running(self) -> bool:
        return self.refresh_state() is ContainerState.RUNNING

    # Daemon helpers

    def _get_client(self, operation: str) -> docker.DockerClient:
        if self._client is None:
            try:
                if self.docker_host:
                    # Keep DOCKER_TLS_VERIFY and DOCKER_CERT_PATH for an explicit host
                    client_kwargs = docker.utils.kwargs_from_env()
                    client_kwargs["base_url"] = self.docker_host
                    self._client = docker.DockerClient(**client_kwargs)
                else:
                    self._client = docker.from_env()
            except _DAEMON_ERRORS as e:
                raise DaemonUnavailable(
                    f"Docker daemon is not reachable ({e}). Make sure it is running.",
                    self.container_name,
                    operation,
                ) from e
        return self._client

    def _ping(self, client: docker.DockerClient) -> None:
        try:
            alive = client.ping()
        except _DAEMON_ERRORS as e:
            raise DaemonUnavailable(
                f"Docker daemon is not running ({e}). Make sure to start it before running this test.",
                self.container_name,
                "ping",
            ) from e
        if not alive:
            raise DaemonUnavailable(
                "Docker daemon did not answer the ping",
                self.container_name,
                "ping",
            )

    def _find_container(self, client: docker.DockerClient, operation: str, error_class=BitcoindError):
        try:
            return client.containers.get(self.container_name)
        except NotFound:
            return None
        except APIError as e:
            # The daemon answered, so this is a failure of the operation itself
            raise error_class(f"Could not inspect container: {e}", self.container_name, operation) from e
        except _DAEMON_ERRORS as e:
            raise DaemonUnavailable(
                f"Could not inspect container: {e}", self.container_name, operation
            ) from e

    def _create_container(self, client: docker.DockerClient):
        return client.containers.create(
            self.image,
            command=self.launch_args(),
            name=self.container_name,
            environment={"BITCOIN_DATA": CONTAINER_DATA_DIR},
            ports=self.container_ports(),
            volumes=self.container_volumes(),
        )

    def _create_with_pull(self, client: docker.DockerClient):
        try:
            return self._create_container(client)
        except ImageNotFound:
            logger.info(f"Image {self.image} not found locally")
        except _DAEMON_ERRORS as e:
            raise CreateFailed(str(e), self.container_name, "create") from e

        self._pull_image(client)

        try:
            return self._create_container(client)
        except ImageNotFound as e:
            raise PullFailed(
                f"Image {self.image} is still missing after pulling it: {e}",
                self.container_name,
                "pull",
            ) from e
        except _DAEMON_ERRORS as e:
            raise CreateFailed(str(e), self.container_name, "create") from e

    def _pull_image(self, client: docker.DockerClient) -> None:
        repository, tag = parse_repository_tag(self.image)
        tag = tag or "latest"
        logger.info(f"Pulling image {repository}:{tag}")
        try:
            for progress in client.api.pull(repository, tag=tag, stream=True, decode=True):
                if "error" in progress:
                    raise PullFailed(progress["error"], self.container_name, "pull")
                logger.debug(
                    f"Pull progress: {progress.get('status', '')} {progress.get('progress', '')}".rstrip()
                )
        except _DAEMON_ERRORS as e:
            raise PullFailed(str(e), self.container_name, "pull") from e
        logger.info(f"Pulled image {repository}:{tag}")

    def _verify_image_hash(self, container) -> None:
        found = container.attrs.get("Image", "")
        expected = _normalize_image_id(self.image_hash)
        # Short IDs (docker images output) match as prefixes
        if expected and _normalize_image_id(found).startswith(expected):
            return
        logger.error(f"Container {self.container_name} uses image {found}, expected {self.image_hash}")
        try:
            container.remove(force=True)
        except _DAEMON_ERRORS as e:
            logger.warning(f"Could not remove container {self.container_name} after hash mismatch: {e}")
        else:
            self.state = ContainerState.NOT_CREATED
            self.container_id = None
        raise ImageHashMismatch(self.image_hash, found, self.container_name)

    def _start_container(self, container, failure_state: ContainerState) -> None:
        try:
            container.start()
        except _DAEMON_ERRORS as e:
            self.state = failure_state
            raise StartFailed(str(e), self.container_name, "start") from e

        if self.startup_grace > 0:
            time.sleep(self.startup_grace)

        try:
            container.reload()
        except _DAEMON_ERRORS as e:
            self.state = failure_state
            raise StartFailed(f"Could not inspect container after start: {e}", self.container_name, "start") from e

        if container.status != "running":
            self.state = failure_state
            exit_code = container.attrs.get("State", {}).get("ExitCode")
            raise StartFailed(
                f"Container is {container.status} (exit code {exit_code}). Last log lines:\n"
                f"{self._log_tail(container)}",
                self.container_name,
                "start",
            )

        self.state = ContainerState.RUNNING
        logger.info(f"Container {self.container_name} is running")

    def _log_tail(self, container) -> str:
        try:
            output = container.logs(tail=LOG_TAIL_LINES)
        except _DAEMON_ERRORS as e:
            logger.debug(f"Could not fetch logs for {self.container_name}: {e}")
            return "<logs unavailable>"
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        return output.strip()


def _normalize_image_id(image_id: Optional[str]) -> str:
    image_id = (image_id or "").strip().lower()
    if image_id.startswith("sha256:"):
        image_id = image_id[len("sha256:"):]
    return image_id


def _state_from_status(status: str) -> ContainerState:
    if status in ("running", "paused", "restarting"):
        return ContainerState.RUNNING
    if status == "created":
        return ContainerState.CREATED
    return ContainerState.STOPPED
