import json
import logging
import threading
import uuid

import paho.mqtt.client as mqtt

from lm75_connector.errors import BrokerConnectionError
from lm75_connector.models import ConnectionState

logger = logging.getLogger('lm75_broker')


class BrokerClient:
    """
    Single outbound MQTT connection used to publish sensor readings.

    Reconnection is left to the paho network loop; this class only tracks the
    connection state and reports every transition to its listeners.
    """

    def __init__(self, client_factory=None):
        self._client_factory = client_factory or self._create_client
        self._client = None
        self._state = ConnectionState.DISCONNECTED
        self._listeners = []
        self._lock = threading.Lock()
        self.address = None

    @property
    def state(self):
        return self._state

    @property
    def is_connected(self):
        return self._state is ConnectionState.CONNECTED

    @property
    def has_client(self):
        return self._client is not None

    def add_listener(self, callback):
        """Register callback(state, error) for every connection state change"""
        self._listeners.append(callback)

    def _set_state(self, state, error=None):
        with self._lock:
            if state is self._state and error is None:
                return
            self._state = state
        for callback in list(self._listeners):
            try:
                callback(state, error)
            except Exception as e:
                logger.error(f"Error in connection listener: {e}")

    def _create_client(self, client_id):
        try:
            major_version = int(mqtt.__version__.split('.')[0])

            if major_version >= 2:
                return mqtt.Client(
                    client_id=client_id,
                    callback_api_version=mqtt.CallbackAPIVersion.VERSION2
                )
        except (AttributeError, ValueError):
            logger.warning("Could not determine MQTT version, using default client initialization")
        return mqtt.Client(client_id=client_id)

    def connect(self, mqtt_config):
        if self._client is not None:
            logger.warning(f"MQTT client for {self.address} already exists, not connecting again")
            return False

        self.address = mqtt_config.address
        logger.debug(f"Connecting to: {self.address}")

        client_id = mqtt_config.client_id or f"lm75_connector_{uuid.uuid4().hex[:8]}"
        logger.debug("new MQTT client creation ...")
        client = self._client_factory(client_id)

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_connect_fail = self._on_connect_fail
        client.enable_logger(logging.getLogger('paho'))

        if mqtt_config.username:
            client.username_pw_set(mqtt_config.username, mqtt_config.password)
        client.reconnect_delay_set(
            min_delay=mqtt_config.reconnect_min_delay,
            max_delay=mqtt_config.reconnect_max_delay
        )

        self._client = client
        self._set_state(ConnectionState.CONNECTING)

        # connect_async lets the network loop retry the first connection too
        client.connect_async(mqtt_config.host, mqtt_config.port, mqtt_config.keepalive)
        client.loop_start()
        return True

    def publish(self, topic, payload):
        client = self._client
        if client is None:
            logger.debug(f"No MQTT client, dropping message for {topic}")
            return None

        message = payload if isinstance(payload, (str, bytes)) else json.dumps(payload)
        info = client.publish(topic, message)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"Publish to {topic} failed with code {info.rc}")
        return info

    def disconnect(self):
        """Close the connection without draining in-flight messages"""
        client = self._client
        if client is None:
            return False

        self._client = None
        try:
            client.loop_stop()
            client.disconnect()
        except Exception as e:
            logger.error(f"Error disconnecting from MQTT broker: {e}")
        finally:
            self._set_state(ConnectionState.DISCONNECTED)

        logger.info(f"Disconnected from {self.address}")
        return True

    def _connection_problem(self, state, event, reason=None):
        error = BrokerConnectionError(event, reason)
        logger.error(f"Connection problem, disconnecting ... {error}")
        self._set_state(state, error)

    def _on_connect(self, client, userdata, flags, rc, properties=None):
        if client is not self._client:
            return
        if rc == 0:
            logger.info(f"Successfully connected to: {self.address}")
            self._set_state(ConnectionState.CONNECTED)
        else:
            self._connection_problem(ConnectionState.ERROR, "refused", rc)

    def _on_disconnect(self, client, userdata, *args):
        # v1 callbacks pass (rc,), v2 callbacks pass (flags, reason_code, properties)
        if client is not self._client:
            return
        if len(args) > 1:
            rc = args[1]
        else:
            rc = args[0] if args else None
        event = "closed" if rc == 0 else "offline"
        self._connection_problem(ConnectionState.DISCONNECTED, event, rc)

    def _on_connect_fail(self, client, userdata):
        if client is not self._client:
            return
        self._connection_problem(ConnectionState.ERROR, "error")
