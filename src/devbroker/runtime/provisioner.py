from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from devbroker.core.errors import (
    ContainerRuntimeError,
    ProvisionError,
    TeardownError,
    UnsupportedImageError,
)
from devbroker.core.models import BrokerConnection, DevServicesSettings
from devbroker.runtime.container import ContainerRequest, ContainerRuntime

logger = logging.getLogger(__name__)

AMQP_PORT = 5672
DEFAULT_USER = "admin"
DEFAULT_PASSWORD = "admin"

ARTEMIS_REPOSITORY = "artemiscloud/activemq-artemis-broker"
# "AMQ241004: Artemis Console available", the last line the broker logs on startup
ARTEMIS_READINESS_PATTERN = r".*AMQ241004.*"


@dataclass(frozen=True)
class ImageReference:
    """A parsed container image name."""

    registry: Optional[str]
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None


def parse_image_name(image: str) -> ImageReference:
    """Split ``[registry/]repository[:tag][@digest]`` into its parts.

    The first path component is a registry only when it looks like a host
    (contains ``.`` or ``:``, or is ``localhost``).
    """
    name = image.strip()
    if not name:
        raise UnsupportedImageError(image, ARTEMIS_REPOSITORY)

    digest: Optional[str] = None
    if "@" in name:
        name, digest = name.split("@", 1)

    tag: Optional[str] = None
    last_slash = name.rfind("/")
    last_colon = name.rfind(":")
    if last_colon > last_slash:
        name, tag = name[:last_colon], name[last_colon + 1:]

    registry: Optional[str] = None
    parts = name.split("/", 1)
    if len(parts) == 2 and ("." in parts[0] or ":" in parts[0] or parts[0] == "localhost"):
        registry, name = parts

    return ImageReference(registry=registry, repository=name, tag=tag, digest=digest)


class BrokerInstance:
    """A running dev broker, owned by the lifecycle registry until released.

    ``close`` runs the release handle at most once, even when called concurrently.
    """

    def __init__(self, host: str, port: int, user: str, password: str, release: Callable[[], None]) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self._release = release
        self._lock = threading.Lock()
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def connection(self) -> BrokerConnection:
        return BrokerConnection(host=self.host, port=self.port, user=self.user, password=self.password)

    def close(self) -> bool:
        """Release the broker; returns False when it was already released."""
        with self._lock:
            if self._released:
                return False
            self._released = True
        self._release()
        return True

    def __repr__(self) -> str:
        return f"BrokerInstance(host={self.host!r}, port={self.port}, released={self._released})"


class BrokerProvisioner:
    """Starts and stops Artemis broker containers through a container runtime."""

    def __init__(self, runtime: ContainerRuntime, readiness_timeout: Optional[float] = None) -> None:
        self.runtime = runtime
        self.readiness_timeout = readiness_timeout

    def build_request(self, settings: DevServicesSettings) -> ContainerRequest:
        """Build the container request, rejecting unsupported images before anything runs."""
        reference = parse_image_name(settings.image_name)
        if reference.repository != ARTEMIS_REPOSITORY:
            raise UnsupportedImageError(settings.image_name, ARTEMIS_REPOSITORY)

        timeout = self.readiness_timeout if self.readiness_timeout is not None else settings.readiness_timeout
        fixed_port = settings.port if settings.port is not None and settings.port > 0 else None

        return ContainerRequest(
            image=settings.image_name,
            exposed_port=AMQP_PORT,
            readiness_pattern=ARTEMIS_READINESS_PATTERN,
            timeout=timeout,
            env={
                "AMQ_USER": DEFAULT_USER,
                "AMQ_PASSWORD": DEFAULT_PASSWORD,
                "AMQ_EXTRA_ARGS": settings.extra_args,
            },
            fixed_port=fixed_port,
        )

    def start(self, settings: DevServicesSettings) -> Optional[BrokerInstance]:
        """Start a broker; returns None when dev services are disabled.

        Raises ProvisionError when the image is unsupported or the container fails
        to start or to become ready.
        """
        if not settings.devservices_enabled:
            return None

        request = self.build_request(settings)
        logger.debug("Starting AMQP dev service container from image %s", request.image)
        try:
            container = self.runtime.run(request)
        except ContainerRuntimeError as exc:
            raise ProvisionError(f"Unable to start the AMQP broker from image '{request.image}'", exc) from exc

        return BrokerInstance(
            host=container.host,
            port=container.port,
            user=DEFAULT_USER,
            password=DEFAULT_PASSWORD,
            release=container.release,
        )

    def stop(self, instance: Optional[BrokerInstance]) -> None:
        """Release a broker; never raises, and a second call for the same instance does nothing."""
        if instance is None:
            return

        try:
            if instance.close():
                logger.debug("Stopped AMQP dev service at %s:%s", instance.host, instance.port)
        except Exception as exc:
            error = TeardownError(instance.host, instance.port, exc)
            logger.error("%s", error, exc_info=exc)
