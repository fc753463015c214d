"""
Exceptions raised by the epidemic-spaces kernel.
"""


class PreconditionError(RuntimeError):
    """
    An integration bug in the host simulation.

    Raised for calls made in the wrong order (operating before initialize,
    initializing twice), impossible configuration (empty delay range) or
    scheduling into the past. Unlike data-stream anomalies, these are never
    swallowed: the EventBus and the Scheduler let them propagate so the run
    aborts.
    """
