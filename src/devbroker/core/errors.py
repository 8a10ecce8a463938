from typing import Optional


class DevServiceError(Exception):
    """Base class for dev service failures."""


class ConfigurationError(DevServiceError):
    """Raised when the dev service configuration file cannot be used."""


class ContainerRuntimeError(DevServiceError):
    """Raised by a container runtime when a container cannot be run."""


class ReadinessTimeoutError(ContainerRuntimeError):
    """
    Raised when a container never logged its readiness line within the allowed time.
    """
    def __init__(self, image: str, pattern: str, timeout: float):
        self.image = image
        self.pattern = pattern
        self.timeout = timeout
        super().__init__(
            f"Container '{image}' did not log a line matching '{pattern}' within {timeout:g}s"
        )


class ProvisionError(DevServiceError):
    """
    Raised when a broker could not be provisioned.

    The underlying collaborator failure, if any, is kept on ``cause`` and chained.
    """
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{message}{detail}")


class UnsupportedImageError(ProvisionError):
    """Raised before any container is launched when the image is not a supported broker image."""
    def __init__(self, image: str, supported: str):
        self.image = image
        self.supported = supported
        super().__init__(f"Only {supported} images are supported, got '{image}'")


class TeardownError(DevServiceError):
    """
    Failure while releasing a broker instance.

    Only used to give log records context; it never propagates out of a stop call.
    """
    def __init__(self, host: str, port: int, cause: BaseException):
        self.host = host
        self.port = port
        self.cause = cause
        super().__init__(f"Failed to stop the AMQP broker at {host}:{port}: {cause}")
