class AssistantConfigError(ValueError):
    """Base class for rejected requests against a configuration."""
    pass

class NodeNotFoundError(AssistantConfigError):
    """Raised when a referenced node id does not exist."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")

class InvalidOperationError(AssistantConfigError):
    """Raised for structurally disallowed requests, e.g. deleting the root."""
    pass

class InvalidStructureError(AssistantConfigError):
    """Raised when an imported configuration is malformed."""
    pass
