# Overview: Operation scope constants for grouping gated operations.


class OperationScope:
    """Which side of the platform an operation belongs to."""
    PLATFORM = "PLATFORM"
    OPERATIONAL = "OPERATIONAL"
