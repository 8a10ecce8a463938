import pytest

from conftest import make_properties
from devbroker.config.properties import PropertySource, environment_name
from devbroker.core.errors import ConfigurationError
from devbroker.core.models import DEFAULT_EXTRA_ARGS, DEFAULT_IMAGE_NAME, DevServicesSettings


def test_environment_name_uses_microprofile_mapping():
    assert environment_name("amqp-host") == "AMQP_HOST"
    assert environment_name("mp.messaging.incoming.prices.host") == "MP_MESSAGING_INCOMING_PRICES_HOST"


def test_environment_value_overrides_file_value():
    properties = make_properties({"amqp-port": "5672"}, environ={"AMQP_PORT": "5673"})

    assert properties.get_value("amqp-port") == "5673"


def test_environment_only_property_is_present_but_not_listed():
    properties = make_properties({}, environ={"AMQP_HOST": "broker.internal"})

    assert properties.is_property_present("amqp-host") is True
    assert "amqp-host" not in properties.get_property_names()


def test_empty_values_count_as_absent():
    properties = make_properties({"amqp-host": ""}, environ={"AMQP_PORT": ""})

    assert properties.is_property_present("amqp-host") is False
    assert properties.is_property_present("amqp-port") is False


def test_get_value_raises_key_error_when_missing():
    properties = make_properties()

    with pytest.raises(KeyError):
        properties.get_value("amqp-host")


def test_from_file_flattens_yaml(tmp_path):
    config_file = tmp_path / "devbroker.yaml"
    config_file.write_text(
        """
mp:
  messaging:
    incoming:
      prices:
        connector: smallrye-amqp
        port: 5672
"""
    )

    properties = PropertySource.from_file(config_file, environ={})

    assert properties.get_property_names() == {
        "mp.messaging.incoming.prices.connector",
        "mp.messaging.incoming.prices.port",
    }
    assert properties.get_value("mp.messaging.incoming.prices.port") == "5672"


def test_settings_defaults_when_nothing_is_configured():
    settings = DevServicesSettings.from_properties(make_properties())

    assert settings.enabled is None
    assert settings.devservices_enabled is True
    assert settings.image_name == DEFAULT_IMAGE_NAME
    assert settings.port is None
    assert settings.extra_args == DEFAULT_EXTRA_ARGS


def test_settings_read_devservices_section():
    properties = make_properties(
        {
            "amqp.devservices.enabled": "false",
            "amqp.devservices.image-name": "artemiscloud/activemq-artemis-broker:latest",
            "amqp.devservices.port": "5673",
            "amqp.devservices.extra-args": "--no-fsync",
            "amqp.devservices.nested.key": "ignored",
        }
    )

    settings = DevServicesSettings.from_properties(properties)

    assert settings.devservices_enabled is False
    assert settings.image_name == "artemiscloud/activemq-artemis-broker:latest"
    assert settings.port == 5673
    assert settings.extra_args == "--no-fsync"


def test_settings_reject_out_of_range_port():
    with pytest.raises(ConfigurationError, match="amqp.devservices.port"):
        DevServicesSettings.from_properties(make_properties({"amqp.devservices.port": "70000"}))


def test_settings_reject_values_that_do_not_validate():
    properties = make_properties({"amqp.devservices.enabled": "maybe", "amqp.devservices.readiness-timeout": "soon"})

    with pytest.raises(ConfigurationError) as excinfo:
        DevServicesSettings.from_properties(properties)

    assert "amqp.devservices.enabled" in str(excinfo.value)
    assert "amqp.devservices.readiness-timeout" in str(excinfo.value)


def test_settings_port_zero_means_no_fixed_port():
    settings = DevServicesSettings.from_properties(make_properties({"amqp.devservices.port": "0"}))

    assert settings.port == 0
