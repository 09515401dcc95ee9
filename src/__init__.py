"""scamguard: content-analysis gateway for scam reports."""

from scamguard.version import __version__

__all__ = ["__version__"]
