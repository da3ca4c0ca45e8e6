"""FlockPilot: distributed heading-consensus controller for rover fleets."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("flockpilot")
except PackageNotFoundError:
    # Running from a source checkout
    __version__ = "0.4.0"

__all__ = ["__version__"]
