"""Exception types raised by the simulator."""


class LaborSimError(Exception):
    """Base class for all simulator errors."""


class InvalidScenarioError(LaborSimError):
    """Scenario timeframe or targets are out of range."""


class NoScenarioConfiguredError(LaborSimError):
    """A run was requested before any scenario was created."""


class InvalidTypeError(LaborSimError):
    """Unknown intervention type."""


class DataUnavailableError(LaborSimError):
    """Baseline snapshot is missing or malformed."""


class InvalidParameterError(LaborSimError):
    """Unknown sensitivity parameter, or an intervention parameter value of the wrong type or out of range."""


class NoResultsError(LaborSimError):
    """Results were requested before any simulation completed."""


class ComparisonError(LaborSimError):
    """Scenario comparison is full or already holds a run with that name."""
