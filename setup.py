#!/usr/bin/env python3
from setuptools import setup, find_packages

setup(
    name="lm75-connector",
    version="0.1.0",
    description="Publishes LM75 temperature readings from the I2C bus to an MQTT broker",
    packages=find_packages(include=["lm75_connector", "lm75_connector.*"]),
    python_requires=">=3.8",
    install_requires=[
        "paho-mqtt>=1.6.0",
        "python-dotenv>=1.0.0",
        "smbus2>=0.4.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "lm75-connector=lm75_connector.main:main",
        ],
    },
)
