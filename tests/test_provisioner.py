import logging

import pytest

from devbroker.core.errors import ContainerRuntimeError, ProvisionError, ReadinessTimeoutError, UnsupportedImageError
from devbroker.core.models import DevServicesSettings
from devbroker.runtime.provisioner import (
    AMQP_PORT,
    ARTEMIS_READINESS_PATTERN,
    BrokerInstance,
    BrokerProvisioner,
    parse_image_name,
)


@pytest.mark.parametrize(
    "image, registry, repository, tag",
    [
        ("quay.io/artemiscloud/activemq-artemis-broker:1.0.25", "quay.io", "artemiscloud/activemq-artemis-broker", "1.0.25"),
        ("artemiscloud/activemq-artemis-broker", None, "artemiscloud/activemq-artemis-broker", None),
        ("localhost:5000/artemiscloud/activemq-artemis-broker:dev", "localhost:5000", "artemiscloud/activemq-artemis-broker", "dev"),
        ("rabbitmq:3-management", None, "rabbitmq", "3-management"),
    ],
)
def test_parse_image_name(image, registry, repository, tag):
    reference = parse_image_name(image)

    assert reference.registry == registry
    assert reference.repository == repository
    assert reference.tag == tag


def test_parse_image_name_with_digest():
    reference = parse_image_name("quay.io/artemiscloud/activemq-artemis-broker@sha256:abc123")

    assert reference.repository == "artemiscloud/activemq-artemis-broker"
    assert reference.digest == "sha256:abc123"
    assert reference.tag is None


def test_start_builds_artemis_container_request(runtime):
    provisioner = BrokerProvisioner(runtime, readiness_timeout=5.0)
    settings = DevServicesSettings(extra_args="--no-fsync")

    instance = provisioner.start(settings)

    assert instance is not None
    request = runtime.requests[0]
    assert request.image == settings.image_name
    assert request.exposed_port == AMQP_PORT
    assert request.readiness_pattern == ARTEMIS_READINESS_PATTERN
    assert request.timeout == 5.0
    assert request.fixed_port is None
    assert request.env == {
        "AMQ_USER": "admin",
        "AMQ_PASSWORD": "admin",
        "AMQ_EXTRA_ARGS": "--no-fsync",
    }
    assert (instance.host, instance.user, instance.password) == ("localhost", "admin", "admin")


def test_start_pins_fixed_port(runtime):
    instance = BrokerProvisioner(runtime).start(DevServicesSettings(port=5673))

    assert runtime.requests[0].fixed_port == 5673
    assert runtime.requests[0].timeout == 60.0
    assert instance.port == 5673


def test_start_treats_port_zero_as_random(runtime):
    instance = BrokerProvisioner(runtime).start(DevServicesSettings(port=0))

    assert runtime.requests[0].fixed_port is None
    assert instance.port == 41000


def test_start_declines_when_disabled(runtime):
    assert BrokerProvisioner(runtime).start(DevServicesSettings(enabled=False)) is None
    assert runtime.started == 0


def test_unsupported_image_is_rejected_before_launch(runtime):
    with pytest.raises(UnsupportedImageError) as excinfo:
        BrokerProvisioner(runtime).start(DevServicesSettings(image_name="rabbitmq:3-management"))

    assert isinstance(excinfo.value, ProvisionError)
    assert "rabbitmq:3-management" in str(excinfo.value)
    assert runtime.started == 0


def test_runtime_failure_becomes_provision_error(runtime):
    failure = ReadinessTimeoutError("img", ARTEMIS_READINESS_PATTERN, 1.0)
    runtime.failure = failure

    with pytest.raises(ProvisionError) as excinfo:
        BrokerProvisioner(runtime).start(DevServicesSettings())

    assert excinfo.value.cause is failure
    assert excinfo.value.__cause__ is failure


def test_stop_twice_releases_once(runtime):
    provisioner = BrokerProvisioner(runtime)
    instance = provisioner.start(DevServicesSettings())

    provisioner.stop(instance)
    provisioner.stop(instance)

    assert runtime.released == [instance.port]
    assert instance.released is True


def test_stop_swallows_and_logs_release_failure(caplog):
    def failing_release():
        raise ContainerRuntimeError("daemon went away")

    instance = BrokerInstance("localhost", 41000, "admin", "admin", release=failing_release)

    with caplog.at_level(logging.ERROR, logger="devbroker"):
        BrokerProvisioner(runtime=None).stop(instance)

    assert "Failed to stop the AMQP broker" in caplog.text
    assert "daemon went away" in caplog.text
    assert "Failed to stop the AMQP broker at localhost:41000" in caplog.text
    assert caplog.text.count("Failed to stop the AMQP broker") == 1
    # A failed release still counts as released; the registry never retries it.
    BrokerProvisioner(runtime=None).stop(instance)
    assert caplog.text.count("Failed to stop the AMQP broker") == 1


def test_stop_ignores_missing_instance():
    BrokerProvisioner(runtime=None).stop(None)
