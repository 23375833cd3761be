"""IDX AI gateway: API keys, capability routing and usage metering."""

__version__ = "1.0.0"


def get_version():
    return __version__


__all__ = ["__version__", "get_version"]
