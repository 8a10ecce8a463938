"""Container runtime backed by the Docker Engine, using docker-py."""

import logging
import os
import re
import time
from typing import Any, Callable, Optional
from urllib.parse import urlparse

import docker
from docker.errors import DockerException

from devbroker.core.errors import ContainerRuntimeError, ReadinessTimeoutError
from devbroker.runtime.container import ContainerRequest, RunningContainer

logger = logging.getLogger(__name__)

DEVSERVICE_LABEL = "io.devbroker.devservice"


class ContainerRelease:
    """Stops and removes one container. Errors are left to the caller."""

    def __init__(self, container: Any) -> None:
        self.container = container

    def __call__(self) -> None:
        self.container.remove(force=True, v=True)


def resolve_docker_host(environ: Optional[dict] = None) -> str:
    """Host name where published container ports are reachable."""
    environ = os.environ if environ is None else environ
    docker_host = environ.get("DOCKER_HOST", "")
    if docker_host.startswith(("tcp://", "http://", "https://")):
        hostname = urlparse(docker_host).hostname
        if hostname:
            return hostname
    return "localhost"


class DockerContainerRuntime:
    """Runs dev service containers on the local Docker Engine."""

    def __init__(
        self,
        client_factory: Callable[[], Any] = docker.from_env,
        poll_interval: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the runtime.

        Args:
            client_factory: Creates the Docker client on first use.
            poll_interval: Seconds between readiness log checks.
            clock: Monotonic clock used for the readiness deadline.
            sleep: Sleep function used between readiness checks.
        """
        self.client_factory = client_factory
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep
        self._client: Optional[Any] = None

    @property
    def client(self) -> Any:
        """Get or create Docker client."""
        if self._client is None:
            self._client = self.client_factory()
        return self._client

    def availability(self) -> bool:
        """Check if the Docker daemon is reachable."""
        try:
            self.client.ping()
            return True
        except DockerException:
            return False

    def run(self, request: ContainerRequest) -> RunningContainer:
        port_key = f"{request.exposed_port}/tcp"
        try:
            container = self.client.containers.run(
                request.image,
                detach=True,
                environment=dict(request.env),
                ports={port_key: request.fixed_port},
                labels={DEVSERVICE_LABEL: "amqp"},
            )
        except DockerException as exc:
            raise ContainerRuntimeError(f"Failed to start container from image '{request.image}': {exc}") from exc

        try:
            self._wait_for_log(container, request)
            container.reload()
            host_port = self._mapped_port(container, port_key)
        except ContainerRuntimeError:
            self._discard(container)
            raise
        except DockerException as exc:
            self._discard(container)
            raise ContainerRuntimeError(f"Container from '{request.image}' failed during startup: {exc}") from exc
        except BaseException:
            # Nothing owns the container yet, not even on Ctrl-C.
            self._discard(container)
            raise

        return RunningContainer(
            host=resolve_docker_host(),
            port=host_port,
            release=ContainerRelease(container),
        )

    def _wait_for_log(self, container: Any, request: ContainerRequest) -> None:
        pattern = re.compile(request.readiness_pattern)
        deadline = self.clock() + request.timeout

        while True:
            try:
                output = container.logs(stdout=True, stderr=True)
            except DockerException as exc:
                raise ContainerRuntimeError(f"Unable to read logs of container from '{request.image}': {exc}") from exc

            text = output.decode("utf-8", errors="replace") if isinstance(output, bytes) else str(output)
            if any(pattern.match(line) for line in text.splitlines()):
                return

            container.reload()
            if container.status in {"exited", "dead"}:
                raise ContainerRuntimeError(
                    f"Container from '{request.image}' exited before becoming ready (status={container.status})."
                )

            if self.clock() >= deadline:
                raise ReadinessTimeoutError(request.image, request.readiness_pattern, request.timeout)

            self.sleep(self.poll_interval)

    @staticmethod
    def _mapped_port(container: Any, port_key: str) -> int:
        bindings = container.attrs.get("NetworkSettings", {}).get("Ports", {}).get(port_key) or []
        for binding in bindings:
            host_port = binding.get("HostPort")
            if host_port:
                return int(host_port)
        raise ContainerRuntimeError(f"Container port {port_key} is not published to the host.")

    @staticmethod
    def _discard(container: Any) -> None:
        try:
            container.remove(force=True, v=True)
        except DockerException:
            logger.warning("Unable to remove container %s after a failed start", getattr(container, "id", "?"))
