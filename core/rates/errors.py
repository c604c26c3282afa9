"""
core/rates/errors.py

Rate engine exceptions.

Computation errors (RateResolutionError and subclasses) are raised while
resolving a single rate plan's nightly price. Search catches them per plan and
excludes the failing plan. InvalidBaseChainError is raised by write-time chain
validation and is a ValueError so callers can report it as bad input.
"""


class RateEngineError(Exception):
    """Base class for rate engine errors."""


class RateResolutionError(RateEngineError):
    """A rate plan's nightly price could not be resolved."""

    def __init__(self, message: str, rate_plan_id=None):
        super().__init__(message)
        self.rate_plan_id = rate_plan_id


class MissingBaseRatePlanError(RateResolutionError):
    """A derived rate plan references a base plan that is absent from the snapshot."""


class RateChainCycleError(RateResolutionError):
    """The base_rate_plan_id references form a cycle."""


class RateChainDepthError(RateResolutionError):
    """The base-plan chain is longer than the configured cap."""


class InvalidBaseChainError(RateEngineError, ValueError):
    """A proposed base_rate_plan_id would produce an unresolvable chain."""
