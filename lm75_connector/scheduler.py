import time
import logging
import threading

import paho.mqtt.client as mqtt

from lm75_connector import bus, identity
from lm75_connector.conversion import to_celsius
from lm75_connector.errors import BusError
from lm75_connector.models import PublishMessage, SensorReading

logger = logging.getLogger('lm75_scheduler')


class SamplingScheduler:
    """Reads both sensors every send interval and publishes the readings"""

    def __init__(self, config, broker, read_sensor=None, device_id_lookup=None, clock=None):
        self.config = config
        self.broker = broker
        self.read_sensor = read_sensor or bus.read_sensor
        self.device_id_lookup = device_id_lookup or identity.get_serial
        self.clock = clock or time.time
        self.channels = config.lm75.channels
        self.interval = config.app.send_interval_seconds

        self._stop_event = None
        self._thread = None

    @property
    def running(self):
        return self._thread is not None

    def start(self):
        if self._thread is not None:
            logger.warning("Sending task already running")
            return False

        logger.debug("Start Sending Task ...")
        # Each thread gets its own event so a thread left behind by a timed-out
        # join still sees its stop request
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop_event,),
                                        name="lm75-sampler", daemon=True)
        self._thread.start()
        return True

    def stop(self):
        thread = self._thread
        if thread is None:
            return False

        logger.debug("Stop Sending Task ...")
        self._thread = None
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout=max(self.interval, 1.0) + 1.0)
            if thread.is_alive():
                logger.warning("Sampler thread still busy after stop, it will exit after its current read")
        return True

    def _run(self, stop_event):
        next_tick = time.monotonic() + self.interval
        while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self.tick(stop_event)
            next_tick += self.interval
            now = time.monotonic()
            if next_tick < now:
                # A slow tick skips the missed slots instead of bursting
                next_tick = now + self.interval

    def tick(self, stop_event=None):
        """Sample and publish once; returns the number of messages the broker accepted"""
        if not self.broker.is_connected:
            logger.debug(f"Broker is {self.broker.state.value}, skipping sample")
            return 0

        timestamp = int(round(self.clock()))
        device_id = self.device_id_lookup()
        published = 0

        for channel in self.channels:
            try:
                raw_temp = self.read_sensor(self.config.lm75.bus_num, channel.address)
            except BusError as e:
                logger.error(f"{channel.label} read failed, skipping: {e}")
                continue

            if stop_event is not None and stop_event.is_set():
                logger.debug(f"Stopped during {channel.label} read, dropping sample")
                break

            reading = SensorReading(
                sensor_id=channel.sensor_id,
                raw_value=raw_temp,
                celsius=to_celsius(raw_temp),
                timestamp=timestamp
            )
            logger.info(f"{channel.label} Temp (C): {reading.celsius}")

            message = PublishMessage.from_reading(channel, reading, device_id)
            info = self.broker.publish(message.topic, message.payload)
            logger.debug(f"Publish to {message.topic} {message.payload}")
            if info is not None and info.rc == mqtt.MQTT_ERR_SUCCESS:
                published += 1

        return published
