"""
Exception types raised at the engine's input boundary.

Access denials are not exceptions; see ``models.PolicyDenied``.
"""


class NotFoundError(LookupError):
    """Unknown product or business id."""

    def __init__(self, resource: str, resource_id):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found: {resource_id}")


class InvalidInput(ValueError):
    """Malformed filter or range values, rejected before filtering runs."""
