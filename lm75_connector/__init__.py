"""
LM75 Connector - publishes LM75 temperature readings to an MQTT broker
"""

__version__ = "0.1.0"
