from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from devbroker.config.properties import PropertySource
from devbroker.core.fingerprint import DevServiceFingerprint
from devbroker.core.models import BrokerConnection, DevServicesSettings, LaunchMode
from devbroker.runtime.container import ContainerRuntime
from devbroker.runtime.decision import Decision, DecisionEngine
from devbroker.runtime.provisioner import BrokerProvisioner
from devbroker.runtime.publisher import ConfigPublisher, ResultPublisher
from devbroker.runtime.registry import LifecycleRegistry
from devbroker.runtime.shutdown import CloseTaskNotifier, ProcessExitNotifier, ShutdownNotifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DevServicesCycleResult:
    """Outcome of one build/reload cycle."""

    decision: Decision
    connection: Optional[BrokerConnection] = None
    published: bool = False


class DevServicesController:
    """Drives the AMQP dev service once per build/reload cycle.

    The controller is the owning execution context of the registry it creates: its
    close tasks are one of the registry's termination notifiers, next to process exit.
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        publisher: ConfigPublisher,
        launch_mode: LaunchMode = LaunchMode.DEVELOPMENT,
        registry: Optional[LifecycleRegistry] = None,
        exit_notifier: Optional[ShutdownNotifier] = None,
        on_started: Optional[Callable[[DevServicesCycleResult], None]] = None,
    ) -> None:
        self.launch_mode = launch_mode
        self.on_started = on_started
        self.close_tasks = CloseTaskNotifier()
        self.engine = DecisionEngine(runtime)
        self.result_publisher = ResultPublisher(publisher)

        if registry is None:
            if exit_notifier is None:
                exit_notifier = ProcessExitNotifier()
            registry = LifecycleRegistry(
                BrokerProvisioner(runtime),
                notifiers=[exit_notifier, self.close_tasks],
            )
        self.registry = registry

    def run_cycle(self, properties: PropertySource) -> DevServicesCycleResult:
        """Run one cycle against the given resolved properties.

        Raises ProvisionError when a broker was needed but could not be started.
        """
        if self.launch_mode == LaunchMode.NORMAL:
            logger.debug("Dev services for AMQP are not available in normal launch mode.")
            return DevServicesCycleResult(decision=Decision.SKIP)

        settings = DevServicesSettings.from_properties(properties)
        fingerprint = DevServiceFingerprint.from_settings(settings)
        decision = self.engine.decide(
            settings,
            properties,
            self.registry.snapshot(),
            full_reset=self.launch_mode == LaunchMode.TEST,
        )

        connection = self.registry.apply(decision, settings, fingerprint)

        if decision not in (Decision.START, Decision.RESTART) or connection is None:
            return DevServicesCycleResult(decision=decision, connection=connection)

        self.result_publisher.publish(connection)
        logger.info(
            "Dev Services for AMQP started. Start applications that need to use the same AMQP broker "
            "using -Damqp.host=%s -Damqp.port=%d -Damqp.user=%s -Damqp.password=%s",
            connection.host,
            connection.port,
            connection.user,
            connection.password,
        )

        result = DevServicesCycleResult(decision=decision, connection=connection, published=True)
        if self.on_started is not None:
            self.on_started(result)
        return result

    def stop(self) -> bool:
        """Explicitly stop the dev broker, if one is running."""
        return self.registry.stop()

    def close(self) -> None:
        """Discard this context; its close tasks tear the broker down."""
        self.close_tasks.close()
        # Also covers a first start still in flight, which has no close task yet.
        self.registry.close()
