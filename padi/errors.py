"""Exception types raised by the turn pipeline and its collaborators."""


class PadiError(Exception):
    """Base class for all Pad-i errors."""


class StoreError(PadiError):
    """The persistent store failed to complete an operation."""


class CompletionError(PadiError):
    """The completion provider failed or timed out."""


class RetrievalError(PadiError):
    """Knowledge retrieval could not produce a candidate list."""


class UnknownActionError(PadiError):
    """The model chose an action tag outside the known set."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"unknown action: {action!r}")
