"""
VarnishPurge: broadcast cache invalidations to a fleet of Varnish servers.

Subpackages:
- ``net``: request model and the bounded-concurrency dispatcher
- ``purge``: fan-out orchestration, response classification, reporting
- ``config``: pydantic settings with file/env/CLI precedence
"""

from .errors import ConfigError, TransportError, UnacceptableStatusError, VarnishPurgeError

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "TransportError",
    "UnacceptableStatusError",
    "VarnishPurgeError",
    "__version__",
]
