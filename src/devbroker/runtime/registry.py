from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from devbroker.core.fingerprint import DevServiceFingerprint
from devbroker.core.models import BrokerConnection, DevServicesSettings
from devbroker.runtime.decision import Decision
from devbroker.runtime.provisioner import BrokerInstance, BrokerProvisioner
from devbroker.runtime.shutdown import ShutdownHook, ShutdownNotifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryState:
    """Read-only view of the registry slot."""

    fingerprint: Optional[DevServiceFingerprint] = None
    connection: Optional[BrokerConnection] = None
    hook_installed: bool = False

    @property
    def has_instance(self) -> bool:
        return self.fingerprint is not None


class LifecycleRegistry:
    """Owns the running dev broker, its fingerprint and its shutdown hook.

    State reads and writes happen under one lock; starting and stopping brokers
    happens outside it. The slot is always cleared before the old instance is
    stopped, so an instance is never stopped twice through the registry. A broker
    whose start overlaps a shutdown is stopped instead of registered.
    """

    def __init__(
        self,
        provisioner: BrokerProvisioner,
        notifiers: Sequence[ShutdownNotifier] = (),
    ) -> None:
        self.provisioner = provisioner
        self.notifiers = list(notifiers)
        self._lock = threading.Lock()
        self._instance: Optional[BrokerInstance] = None
        self._fingerprint: Optional[DevServiceFingerprint] = None
        self._connection: Optional[BrokerConnection] = None
        self._hook: Optional[ShutdownHook] = None
        self._shutdowns = 0

    def snapshot(self) -> RegistryState:
        with self._lock:
            return RegistryState(
                fingerprint=self._fingerprint,
                connection=self._connection,
                hook_installed=self._hook is not None,
            )

    def apply(
        self,
        decision: Decision,
        settings: DevServicesSettings,
        fingerprint: Optional[DevServiceFingerprint] = None,
    ) -> Optional[BrokerConnection]:
        """Carry out a decision and return the connection that is now valid, if any.

        Raises ProvisionError when START/RESTART fails; the slot is left empty.
        """
        if fingerprint is None:
            fingerprint = DevServiceFingerprint.from_settings(settings)

        if decision == Decision.SKIP:
            self.stop()
            return None

        if decision == Decision.REUSE:
            with self._lock:
                return self._connection

        if decision == Decision.RESTART:
            self.stop()

        return self._start(settings, fingerprint)

    def stop(self) -> bool:
        """Stop and clear the current instance; returns whether one was registered."""
        instance, _ = self._take()
        if instance is None:
            return False
        self.provisioner.stop(instance)
        return True

    def shutdown(self) -> None:
        """Final teardown; also forgets the hook so a later start can arm a new one."""
        instance, _ = self._take()
        with self._lock:
            self._hook = None
            self._shutdowns += 1
        if instance is not None:
            logger.debug("Shutting down AMQP dev service at %s:%s", instance.host, instance.port)
            self.provisioner.stop(instance)

    def close(self) -> None:
        """Shut down and deregister the armed hook without waiting for it to fire."""
        with self._lock:
            hook = self._hook
        if hook is not None:
            hook.disarm()
        self.shutdown()

    def _start(
        self,
        settings: DevServicesSettings,
        fingerprint: DevServiceFingerprint,
    ) -> Optional[BrokerConnection]:
        with self._lock:
            generation = self._shutdowns

        instance = self.provisioner.start(settings)
        if instance is None:
            self._take()
            return None

        connection = instance.connection()
        with self._lock:
            shut_down = self._shutdowns != generation
            displaced = None
            if not shut_down:
                displaced = self._instance
                self._instance = instance
                self._fingerprint = fingerprint
                self._connection = connection
                if self._hook is None:
                    # Hook install is part of the critical section; registering never blocks.
                    self._hook = ShutdownHook(self.shutdown)
                    self._hook.arm(self.notifiers)

        if shut_down:
            # The owning context shut down while this broker was starting.
            logger.debug("Discarding AMQP dev service at %s:%s started during shutdown", instance.host, instance.port)
            self.provisioner.stop(instance)
            return None

        if displaced is not None and displaced is not instance:
            logger.warning("Replacing an AMQP dev service that was registered concurrently.")
            self.provisioner.stop(displaced)

        return connection

    def _take(self) -> Tuple[Optional[BrokerInstance], Optional[DevServiceFingerprint]]:
        with self._lock:
            instance, fingerprint = self._instance, self._fingerprint
            self._instance = None
            self._fingerprint = None
            self._connection = None
        return instance, fingerprint
