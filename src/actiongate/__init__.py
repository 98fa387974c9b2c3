"""actiongate — human-gated approval lifecycle for agent-proposed shell commands."""

from importlib import metadata

try:
    __version__ = metadata.version("actiongate")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0-dev"
