"""Dev service lifecycle: decisions, provisioning, registry and publishing."""

from devbroker.runtime.controller import DevServicesController, DevServicesCycleResult
from devbroker.runtime.decision import Decision, DecisionEngine, DecisionOutcome
from devbroker.runtime.provisioner import BrokerInstance, BrokerProvisioner
from devbroker.runtime.publisher import (
	ConfigPublisher,
	InMemoryConfigPublisher,
	ResultPublisher,
	read_connection_metadata,
	write_connection_metadata,
)
from devbroker.runtime.registry import LifecycleRegistry, RegistryState
from devbroker.runtime.shutdown import CloseTaskNotifier, ProcessExitNotifier, ShutdownHook

__all__ = [
	"BrokerInstance",
	"BrokerProvisioner",
	"CloseTaskNotifier",
	"ConfigPublisher",
	"Decision",
	"DecisionEngine",
	"DecisionOutcome",
	"DevServicesController",
	"DevServicesCycleResult",
	"InMemoryConfigPublisher",
	"LifecycleRegistry",
	"ProcessExitNotifier",
	"RegistryState",
	"ResultPublisher",
	"ShutdownHook",
	"read_connection_metadata",
	"write_connection_metadata",
]
