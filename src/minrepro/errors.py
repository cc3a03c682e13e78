"""Exception hierarchy for the slicer."""
from typing import List


class SlicerError(Exception):
    """Base class for every error raised by minrepro."""


class TargetNotFoundError(SlicerError):
    """One or more target specifiers matched no declaration.

    Carries the complete list so the caller can fix every specifier at once.
    """

    def __init__(self, unmatched: List[str]):
        self.unmatched = list(unmatched)
        super().__init__(
            "Could not locate the following target methods in the target files: "
            + ", ".join(self.unmatched)
        )


class AmbiguousTargetError(SlicerError):
    """A target specifier matched more than one declaration."""

    def __init__(self, duplicated: List[str]):
        self.duplicated = list(duplicated)
        super().__init__(
            "The following target methods matched more than one declaration: "
            + ", ".join(self.duplicated)
        )


class ResolutionError(SlicerError):
    """A reference could not be bound to a declaration in the source tree."""

    def __init__(self, node_text: str, reason: str):
        self.node_text = node_text
        self.reason = reason
        super().__init__(f"Cannot resolve '{node_text}': {reason}")


class InternalConsistencyError(SlicerError):
    """A traversal invariant was violated. Indicates a defect, never masked."""
