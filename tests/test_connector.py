import atexit
import logging
import signal
import threading
from unittest.mock import MagicMock, call, patch

import pytest

from lm75_connector.config import parse_config
from lm75_connector.connector import Lm75Connector
from lm75_connector.models import ApplicationState
from lm75_connector.scheduler import SamplingScheduler


@pytest.fixture
def scheduler():
    return MagicMock()


@pytest.fixture
def broker():
    return MagicMock()


@pytest.fixture
def connector(app_config, broker, scheduler):
    return Lm75Connector(app_config, broker=broker, scheduler=scheduler)


def run_in_thread(connector):
    result = {}
    thread = threading.Thread(target=lambda: result.setdefault("code", connector.run()))
    thread.start()
    return thread, result


# =============================================================================
# START / STOP
# =============================================================================

class TestStartStop:

    def test_start_connects_broker_then_starts_sampling(self, connector, app_config, broker, scheduler):
        order = MagicMock()
        order.attach_mock(broker.connect, "connect")
        order.attach_mock(scheduler.start, "start")

        connector.start()

        assert order.mock_calls == [call.connect(app_config.mqtt), call.start()]

    def test_stop_order(self, connector, broker, scheduler):
        order = MagicMock()
        order.attach_mock(scheduler.stop, "stop_sampling")
        order.attach_mock(broker.disconnect, "disconnect")

        assert connector.stop() is True

        assert order.mock_calls == [call.stop_sampling(), call.disconnect()]
        assert connector.state is ApplicationState.STOPPING

    def test_stop_twice_runs_shutdown_once(self, connector, broker, scheduler):
        assert connector.stop() is True
        assert connector.stop() is False

        scheduler.stop.assert_called_once()
        broker.disconnect.assert_called_once()

    def test_concurrent_stop_runs_shutdown_once(self, connector, broker, scheduler):
        threads = [threading.Thread(target=connector.stop) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        scheduler.stop.assert_called_once()
        broker.disconnect.assert_called_once()

    def test_broker_disconnected_even_if_scheduler_stop_fails(self, connector, broker, scheduler):
        scheduler.stop.side_effect = RuntimeError("stuck")

        with pytest.raises(RuntimeError):
            connector.stop()

        broker.disconnect.assert_called_once()


# =============================================================================
# RUN / FATAL ERRORS
# =============================================================================

class TestRun:

    def test_shutdown_request_before_start_delay_skips_start(self, raw_config, broker, scheduler):
        raw_config["app"]["startDelay"] = 30
        connector = Lm75Connector(parse_config(raw_config), broker=broker, scheduler=scheduler)
        connector.request_shutdown()

        assert connector.run() == 0

        broker.connect.assert_not_called()
        scheduler.start.assert_not_called()
        assert connector.stopping

    def test_normal_shutdown(self, connector, broker, scheduler):
        started = threading.Event()
        scheduler.start.side_effect = lambda: started.set()

        thread, result = run_in_thread(connector)
        assert started.wait(5)
        connector.request_shutdown()
        thread.join(5)

        assert result["code"] == 0
        scheduler.stop.assert_called_once()
        broker.disconnect.assert_called_once()

    def test_handle_fatal(self, connector, broker, scheduler, caplog):
        connector.handle_fatal(RuntimeError("boom"))

        assert connector.exit_code == 1
        assert connector.stopping
        scheduler.stop.assert_called_once()
        broker.disconnect.assert_called_once()
        assert any(r.levelno == logging.CRITICAL for r in caplog.records)

    def test_error_during_fatal_shutdown_is_logged(self, connector, broker, scheduler, caplog):
        broker.disconnect.side_effect = OSError("socket gone")

        connector.handle_fatal(RuntimeError("boom"))

        assert connector.exit_code == 1
        messages = [r.message for r in caplog.records if r.levelno == logging.CRITICAL]
        assert any("Error while stop" in m for m in messages)

    def test_uncaught_error_in_tick_terminates_with_failure(self, app_config, connected_broker, monkeypatch):
        sampler = SamplingScheduler(
            parse_config({**_as_raw(app_config), "app": {"sendInterval": 10, "startDelay": 0}}),
            connected_broker,
            read_sensor=MagicMock(side_effect=RuntimeError("driver bug")),
            device_id_lookup=lambda: None,
        )
        connector = Lm75Connector(sampler.config, broker=connected_broker, scheduler=sampler)
        monkeypatch.setattr(threading, "excepthook", connector._on_thread_exception)

        thread, result = run_in_thread(connector)
        thread.join(5)

        assert not thread.is_alive()
        assert result["code"] == 1
        assert connector.stopping
        connected_broker.disconnect.assert_called_once()
        assert not sampler.running


class TestInstallHandlers:

    def test_handlers_installed(self, connector, monkeypatch):
        registered = []
        monkeypatch.setattr(atexit, "register", registered.append)
        monkeypatch.setattr(threading, "excepthook", threading.excepthook)

        with patch.object(signal, "signal") as signal_mock:
            connector.install_handlers()

        assert registered == [connector.stop]
        assert threading.excepthook == connector._on_thread_exception
        assert signal_mock.call_count == 2

    def test_signal_requests_shutdown(self, connector):
        connector._on_signal(signal.SIGTERM, None)

        assert connector.run() == 0


def _as_raw(config):
    return {
        "mqtt": {"host": config.mqtt.host, "port": config.mqtt.port},
        "lm75": {
            "bus_num": config.lm75.bus_num,
            "sensor1": config.lm75.sensor1,
            "sensor2": config.lm75.sensor2,
        },
    }
