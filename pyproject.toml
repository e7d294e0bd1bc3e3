[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hdlgrab"
version = "0.1.0"
description = "Decode HDL-32 lidar data packets from pcap captures or UDP into XYZI point clouds"
requires-python = ">=3.10"
dependencies = []
keywords = ["lidar", "hdl-32", "point cloud", "pcap", "udp"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hdlgrab"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
