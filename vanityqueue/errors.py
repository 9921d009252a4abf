class VanityQueueError(Exception):
    """Base class for errors raised by vanityqueue."""

class ClassificationError(VanityQueueError):
    """The job's type/format cannot be turned into a pattern spec."""

class EngineError(VanityQueueError):
    """The matching engine could not produce a result."""

class QueueError(VanityQueueError):
    """Transient failure talking to the work queue."""

class PublishError(VanityQueueError):
    """A single push to the output queue failed."""
