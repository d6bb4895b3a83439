"""Package identifier sent on outbound POSTs and inbound responses."""

import platform

from interactive_messages import __version__


def package_identifier() -> str:
    """e.g. 'interactive-messages/0.1.0 python/3.12.1 linux'."""
    return (
        f"interactive-messages/{__version__} "
        f"python/{platform.python_version()} {platform.system().lower()}"
    )
