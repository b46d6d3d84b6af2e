"""Error taxonomy for incremental planning and execution.

Configuration errors fail immediately and are never retried.
Data-availability errors fail the current pass; a later run may succeed once
the missing data arrives. Iteration-limit errors are fatal. Compute-engine
failures never publish and never touch the previously committed output.
"""

from __future__ import annotations


class IncrementalJobError(Exception):
    """Base class for all errors raised by incremental_rollup."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(IncrementalJobError, ValueError):
    """Invalid or contradictory job configuration."""


class ConflictingConfigError(ConfigurationError):
    """Mutually exclusive date options were combined."""


class UnknownPropertyError(ConfigurationError):
    """A property key in a reserved namespace was not recognized."""


# ---------------------------------------------------------------------------
# Data availability
# ---------------------------------------------------------------------------


class DataAvailabilityError(IncrementalJobError):
    """Required partitions are not present in storage."""


class NoDataAvailableError(DataAvailabilityError):
    pass


class EndDateUnavailableError(DataAvailabilityError):
    pass


class BeginDateUnavailableError(DataAvailabilityError):
    pass


class MissingPartitionError(DataAvailabilityError):
    pass


class CannotSubtractMissingDataError(DataAvailabilityError):
    """A day covered by a reused output has no data left to subtract."""


class IncompleteCoverageError(DataAvailabilityError):
    """Some but not all sources hold data for a day inside the window."""


class MaxInputDataExceededError(DataAvailabilityError):
    """More days are pending than a non-reusing pass may process."""


# ---------------------------------------------------------------------------
# Planner state
# ---------------------------------------------------------------------------


class PlanStateError(IncrementalJobError, RuntimeError):
    pass


class PlanAlreadyExistsError(PlanStateError):
    pass


class PlanNotYetCreatedError(PlanStateError):
    pass


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class IterationLimitExceededError(IncrementalJobError):
    """Work remains after the configured number of passes."""


class ComputeJobFailedError(IncrementalJobError):
    """The compute engine reported an unsuccessful run."""


class PublishError(IncrementalJobError):
    """Staged output could not be moved into its final location."""
