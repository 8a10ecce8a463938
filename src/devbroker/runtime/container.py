from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Protocol


@dataclass(frozen=True)
class ContainerRequest:
    """Everything a container runtime needs to launch and await one broker container."""

    image: str
    exposed_port: int
    readiness_pattern: str
    timeout: float
    env: Dict[str, str] = field(default_factory=dict)
    fixed_port: Optional[int] = None


@dataclass(frozen=True)
class RunningContainer:
    """A started container: where to reach it and how to release it."""

    host: str
    port: int
    release: Callable[[], None]


class ContainerRuntime(Protocol):
    """Contract for the collaborator that actually runs containers."""

    def availability(self) -> bool:
        """Return True when containers can be launched on this host."""
        ...

    def run(self, request: ContainerRequest) -> RunningContainer:
        """Launch a container and block until it is ready.

        Raises ContainerRuntimeError (ReadinessTimeoutError on timeout) on failure.
        """
        ...
