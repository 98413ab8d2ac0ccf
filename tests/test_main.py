from unittest.mock import patch

import pytest

from lm75_connector import main as main_module
from lm75_connector.errors import ConfigError


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch.object(main_module, "configure_logging") as configure:
        yield configure


@pytest.fixture
def connector_cls():
    with patch.object(main_module, "Lm75Connector") as cls:
        cls.return_value.run.return_value = 0
        yield cls


def test_config_error_exits_without_sampling(connector_cls):
    with patch.object(main_module, "load_config", side_effect=ConfigError("Missing 'mqtt.host'")):
        assert main_module.main([]) == 1

    connector_cls.assert_not_called()


def test_runs_connector(app_config, connector_cls, no_logging_setup):
    with patch.object(main_module, "load_config", return_value=app_config) as load:
        assert main_module.main(["--config", "gateway.json"]) == 0

    load.assert_called_once_with("gateway.json")
    no_logging_setup.assert_called_with("DEBUG", None)
    connector = connector_cls.return_value
    connector.install_handlers.assert_called_once()
    connector.run.assert_called_once()


def test_command_line_overrides(app_config, connector_cls, no_logging_setup):
    with patch.object(main_module, "load_config", return_value=app_config):
        main_module.main(["--log-level", "ERROR", "--start-delay", "0"])

    config = connector_cls.call_args[0][0]
    assert config.app.logging_level == "ERROR"
    assert config.app.start_delay == 0
    no_logging_setup.assert_called_with("ERROR", None)


def test_unexpected_error_is_fatal(app_config, connector_cls):
    connector = connector_cls.return_value
    connector.run.side_effect = RuntimeError("boom")

    with patch.object(main_module, "load_config", return_value=app_config):
        assert main_module.main([]) == 1

    connector.handle_fatal.assert_called_once()


def test_run_exit_code_is_returned(app_config, connector_cls):
    connector_cls.return_value.run.return_value = 1

    with patch.object(main_module, "load_config", return_value=app_config):
        assert main_module.main([]) == 1
