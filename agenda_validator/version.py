"""
Version information for the agenda validator.
"""
import importlib.metadata
import pathlib

import tomli

DEFAULT_VERSION = "0.1.0"


def _read_version() -> str:
    # Installed package metadata wins; a source checkout falls back to pyproject.toml
    try:
        return importlib.metadata.version("dao-agenda-validator")
    except importlib.metadata.PackageNotFoundError:
        pass
    try:
        path = pathlib.Path(__file__).parent.parent / "pyproject.toml"
        with path.open("rb") as f:
            return tomli.load(f)["project"]["version"]
    except (FileNotFoundError, KeyError, tomli.TOMLDecodeError):
        return DEFAULT_VERSION


__version__ = _read_version()
