from __future__ import annotations


class PetriFlowError(RuntimeError):
    """Base class for all petriflow-specific errors."""


# ---------------------------------------------------------------------------
# Model construction
# ---------------------------------------------------------------------------


class ModelError(PetriFlowError):
    """Raised when a net violates a structural invariant at build time."""


class UnknownReferenceError(ModelError):
    """Raised when an arc (or a selection) names an unknown place or transition."""


class InvalidArcWeightError(ModelError):
    """Raised when an arc weight is not a strictly positive integer."""


class AsymmetricReadArcError(ModelError):
    """Raised when a place/transition pair has arcs both ways with unequal weights."""


class InvalidArcError(ModelError):
    """Raised when an arc does not connect exactly one place and one transition."""


class DuplicateIdentifierError(ModelError):
    """Raised when a place or transition id is declared more than once."""


class DuplicateArcError(ModelError):
    """Raised when the same (source, target) arc is declared more than once."""


class IsolatedTransitionError(ModelError):
    """Raised when a transition has no adjacent arc."""


class InvalidLevelError(ModelError):
    """Raised when a place is declared with a non-finite initial level."""


# ---------------------------------------------------------------------------
# Rate assignment
# ---------------------------------------------------------------------------


class RateError(PetriFlowError):
    """Raised for negative, non-finite or missing rate constants."""


# ---------------------------------------------------------------------------
# Integration
# ---------------------------------------------------------------------------


class SolverError(PetriFlowError):
    """Raised when a single integration run fails numerically."""


class NonFiniteError(SolverError):
    """Raised when a derivative or state value becomes NaN or infinite."""


class StepTooSmallError(SolverError):
    """Raised when adaptive stepping cannot meet tolerance above ``dt_min``."""


class SolveCancelledError(SolverError):
    """Raised when a cancellation signal is observed between steps."""


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class AnalyticsError(PetriFlowError):
    """Raised for analytics queries that do not match the solution."""


class UnknownPlaceError(AnalyticsError):
    """Raised when a place id is absent from the model that produced a solution."""
