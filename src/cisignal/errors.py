# Copyright (c) Syntropy Systems
"""Exception types raised by cisignal."""

from __future__ import annotations


class CISignalError(Exception):
    """Base class for cisignal errors."""


class AdmissionError(CISignalError, ValueError):
    """An intentional regression failed an admission invariant."""


class MissingFieldError(AdmissionError):
    """A required identifying field is empty."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"{field} must be specified")


class NoBaselineError(AdmissionError):
    """previous_successes is not positive."""

    def __init__(self) -> None:
        super().__init__(
            "previous_successes must be specified: a regression needs a healthy baseline"
        )


class NoRegressedFailuresError(AdmissionError):
    """regressed_failures is not positive."""

    def __init__(self) -> None:
        super().__init__(
            "regressed_failures must be specified: a regression needs current failures"
        )


class NotARegressionError(AdmissionError):
    """The regressed pass percentage is not below the previous one."""

    def __init__(self, previous: float, regressed: float) -> None:
        self.previous = previous
        self.regressed = regressed
        super().__init__(
            "regressed pass percentage must be less than previous pass percentage "
            f"(previous={previous:.4f}, regressed={regressed:.4f})"
        )


class MissingJustificationError(AdmissionError):
    """No reason was given for accepting the regression."""

    def __init__(self) -> None:
        super().__init__("justification must be specified")


class InvalidTrackingLinkError(AdmissionError):
    """The tracking link is not a well-formed URI."""

    def __init__(self, link: str) -> None:
        self.link = link
        super().__init__(f"tracking_link must be a valid URL, got {link!r}")


class MissingDimensionError(AdmissionError):
    """A required variant dimension is absent or empty."""

    def __init__(self, dimension: str) -> None:
        self.dimension = dimension
        super().__init__(f"variant dimension {dimension} must be specified")


class DuplicateRegressionError(AdmissionError):
    """An entry with the same release and canonical key already exists."""

    def __init__(self, release: str, test_id: str, variants: str) -> None:
        self.release = release
        self.test_id = test_id
        self.variants = variants
        super().__init__(
            f"test {test_id!r} was already added for release {release} "
            f"with variants {variants}"
        )


class RegistryBuildError(CISignalError):
    """Building a registry from configuration failed."""

    def __init__(self, release: str, index: int, cause: Exception) -> None:
        self.release = release
        self.index = index
        self.cause = cause
        super().__init__(f"release {release}, entry {index}: {cause}")


class RegistryFrozenError(CISignalError, RuntimeError):
    """A registry was modified after it finished loading."""


class PassPercentageError(CISignalError, ValueError):
    """A pass percentage was requested for zero recorded runs."""


class MalformedResultError(CISignalError, ValueError):
    """Raw job or test results are missing required information."""


class IssueLookupError(CISignalError):
    """The tracked-issue collaborator failed to answer a lookup."""
