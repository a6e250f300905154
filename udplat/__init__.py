"""
udplat - UDP round-trip latency probe

Sends sequenced UDP probes to an echo responder at a fixed interval and
reports per-packet latency, min/avg/max statistics and packet loss.
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .core.config import Config
from .core.logger import setup_logging
from .probe.latency import LatencyProbe
from .probe.state import LatencyResult

__all__ = ["Config", "setup_logging", "LatencyProbe", "LatencyResult"]
