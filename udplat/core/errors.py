"""
Exceptions raised by udplat.
"""


class ConfigurationError(ValueError):
    """Invalid run configuration, detected before any packet is sent."""


class ProbeRunError(RuntimeError):
    """A socket failure aborted a measurement run.

    The statistics gathered up to the failure are available as ``result``.
    A probe is recorded before it is transmitted, so when building or
    sending a probe fails, that probe is still in the ledger and is counted
    in both ``sent_count`` and ``lost_count``.
    """

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result
