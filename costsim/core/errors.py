class CostSimError(Exception):
    """Base class for errors raised by the cost system simulation."""


class ConfigurationError(CostSimError, ValueError):
    """Invalid parameters: policy codes, pool counts, driver counts, input files."""


class InvariantViolation(CostSimError, RuntimeError):
    """Raised when a cost system reaches a state that correct inputs can never produce."""
