class BullyError(Exception):
    """Base class of every error raised by the election package."""


class ConfigError(BullyError, ValueError):
    """Raised when a cluster cannot be created from the given configuration. Nothing is created in that case."""


class NotFoundError(BullyError, LookupError):
    """Raised when an operation names a node id that does not exist in the cluster."""

    def __init__(self, node_id):
        super().__init__(f"Node {node_id} does not exist in the cluster")
        self.node_id = node_id


class EmptyError(BullyError):
    """Raised when an operation needs an eligible node and there is none."""


class NoLeaderError(BullyError):
    """Raised when an operation needs the current leader and the cluster has none."""
