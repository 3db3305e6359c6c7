[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "samlkit"
version = "0.1.0"
description = "SAML 2.0 metadata, xsd:duration handling and identity-provider request processing"
requires-python = ">=3.10"
keywords = ["saml", "saml2", "sso", "identity-provider", "metadata", "authentication"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration :: Authentication/Directory",
    "Topic :: Security",
]
dependencies = [
    "defusedxml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["samlkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
