[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "rfoperator"
version = "1.0.0"
description = "Reconciliation core for Redis failover clusters: resource model, validation, health checks, healing and Prometheus-format metrics."
requires-python = ">=3.10"
dependencies = []
keywords = ["redis", "sentinel", "failover", "kubernetes", "operator", "prometheus"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["rfoperator*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
