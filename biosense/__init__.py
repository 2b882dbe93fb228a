"""Optical heart-rate and SpO2 algorithms, an I2C bus, and MAX30105 and AD5593R drivers."""

__version__ = "0.1.0"