"""subharvest: fetch proxy subscription sources into a local config store."""

__version__ = "0.1.0"
