import atexit
import logging
import signal
import threading

from lm75_connector.broker import BrokerClient
from lm75_connector.models import ApplicationState
from lm75_connector.scheduler import SamplingScheduler

logger = logging.getLogger('lm75_connector')


class Lm75Connector:
    """
    Owns the process lifecycle: connects the broker, runs the sampler and
    shuts both down exactly once, sampler first.
    """

    def __init__(self, config, broker=None, scheduler=None):
        self.config = config
        self.broker = broker or BrokerClient()
        self.scheduler = scheduler or SamplingScheduler(config, self.broker)
        self.state = ApplicationState.RUNNING
        self.exit_code = 0

        self._lock = threading.Lock()
        self._shutdown_event = threading.Event()

    @property
    def stopping(self):
        return self.state is ApplicationState.STOPPING

    def install_handlers(self):
        atexit.register(self.stop)
        threading.excepthook = self._on_thread_exception
        signal.signal(signal.SIGINT, self._on_signal)
        signal.signal(signal.SIGTERM, self._on_signal)
        logger.debug("Initialize ...")

    def start(self):
        logger.info(f"Starting with Config: {self.config.to_dict()}")
        self.broker.connect(self.config.mqtt)
        self.scheduler.start()

    def stop(self):
        with self._lock:
            if self.state is ApplicationState.STOPPING:
                return False
            self.state = ApplicationState.STOPPING

        logger.info("Stopping ...")
        try:
            self.scheduler.stop()
        finally:
            self.broker.disconnect()
        return True

    def request_shutdown(self):
        self._shutdown_event.set()

    def handle_fatal(self, error):
        logger.critical(f"Unhandled exception: {error!r}", exc_info=error)
        try:
            self.stop()
        except Exception as stop_error:
            logger.critical(f"Error while stop: {stop_error!r}", exc_info=stop_error)
        finally:
            self.exit_code = 1
            self._shutdown_event.set()

    def run(self):
        """Start after the startup delay and block until shutdown; returns the exit code"""
        delay = self.config.app.start_delay
        if delay:
            logger.info(f"Waiting {delay}s for hardware to settle")
        if not self._shutdown_event.wait(delay):
            self.start()
            self._shutdown_event.wait()
        self.stop()
        return self.exit_code

    def _on_signal(self, signum, frame):
        logger.info(f"Received signal {signal.Signals(signum).name}, shutting down")
        self.request_shutdown()

    def _on_thread_exception(self, args):
        if issubclass(args.exc_type, SystemExit):
            return
        self.handle_fatal(args.exc_value)
