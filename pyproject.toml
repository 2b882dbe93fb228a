[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "biosense"
version = "0.1.0"
description = "Optical heart-rate and SpO2 algorithms with I2C drivers for the MAX30105 sensor and the AD5593R DAC/ADC/GPIO chip"
requires-python = ">=3.10"
dependencies = []
keywords = ["heart-rate", "spo2", "ppg", "max30105", "max30102", "ad5593r", "i2c", "sensor"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
    "Topic :: System :: Hardware",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["biosense"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
