from conftest import make_properties
from devbroker.discovery.channels import has_channel_needing_discovery


def _needs_discovery(values):
    properties = make_properties(values)
    return has_channel_needing_discovery(properties.get_property_names(), properties)


def test_no_channels_defaults_to_needing_discovery():
    assert _needs_discovery({}) is True


def test_amqp_channel_without_location_needs_discovery():
    assert _needs_discovery({"mp.messaging.incoming.prices.connector": "smallrye-amqp"}) is True


def test_amqp_channel_with_host_is_configured():
    values = {
        "mp.messaging.incoming.prices.connector": "smallrye-amqp",
        "mp.messaging.incoming.prices.host": "broker.internal",
    }

    assert _needs_discovery(values) is False


def test_amqp_channel_with_port_only_is_configured():
    values = {
        "mp.messaging.outgoing.orders.connector": "smallrye-amqp",
        "mp.messaging.outgoing.orders.port": "5672",
    }

    assert _needs_discovery(values) is False


def test_one_unconfigured_channel_is_enough():
    values = {
        "mp.messaging.incoming.prices.connector": "smallrye-amqp",
        "mp.messaging.incoming.prices.host": "broker.internal",
        "mp.messaging.outgoing.orders.connector": "smallrye-amqp",
    }

    assert _needs_discovery(values) is True


def test_connector_value_is_case_insensitive():
    values = {
        "mp.messaging.incoming.prices.connector": " SmallRye-AMQP ",
        "mp.messaging.incoming.prices.host": "broker.internal",
    }

    assert _needs_discovery(values) is False


def test_other_connectors_are_ignored():
    values = {
        "mp.messaging.incoming.prices.connector": "smallrye-kafka",
        "mp.messaging.incoming.orders.connector": "smallrye-amqp",
        "mp.messaging.incoming.orders.host": "broker.internal",
    }

    assert _needs_discovery(values) is False


def test_only_other_connectors_falls_back_to_needing_discovery():
    assert _needs_discovery({"mp.messaging.incoming.prices.connector": "smallrye-kafka"}) is True


def test_channel_location_from_environment_counts():
    properties = make_properties(
        {"mp.messaging.incoming.prices.connector": "smallrye-amqp"},
        environ={"MP_MESSAGING_INCOMING_PRICES_HOST": "broker.internal"},
    )

    assert has_channel_needing_discovery(properties.get_property_names(), properties) is False
