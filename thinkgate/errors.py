"""
Exception types for ThinkGate.

None of these are fatal to the host: the reasoning tool handler turns
them into error strings and the iteration controller downgrades them
to low-confidence reflections.
"""


class ThinkGateError(Exception):
    """Base class for ThinkGate errors."""


class UnknownOperationError(ThinkGateError):
    """Raised when a named reasoning operation does not exist."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown reasoning function: {name}")


class InvalidParamsError(ThinkGateError):
    """Raised when action or operation parameters fail validation."""
    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Invalid parameters for {target}: {reason}")
