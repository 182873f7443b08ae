"""
Exception types raised by the attendance engine.
"""


class DimensionMismatch(ValueError):
    """Two embeddings of different length were compared."""

    def __init__(self, left: int, right: int):
        super().__init__(f'Embedding dimensions differ: {left} != {right}')
        self.left = left
        self.right = right


class ConfigurationError(ValueError):
    """Session cannot start with the given gallery or settings."""
