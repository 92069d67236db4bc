"""Exceptions raised by the analysis engine."""


class CaseBrainError(Exception):
    """Base class for engine errors."""


class CaseNotFoundError(CaseBrainError):
    def __init__(self, case_id: object) -> None:
        super().__init__(f"Case not found: {case_id}")
        self.case_id = case_id


class DocumentSelectionError(CaseBrainError):
    """The documents chosen for a rebuild cannot be analysed as given."""


class NoDocumentsSelectedError(DocumentSelectionError):
    """A rebuild was requested without any usable documents."""


class TooManyDocumentsSelectedError(DocumentSelectionError):
    def __init__(self, selected: int, limit: int) -> None:
        super().__init__(
            f"{selected} documents selected; at most {limit} can be analysed together"
        )
        self.selected = selected
        self.limit = limit


class VersionConflictError(CaseBrainError):
    """Version-number assignment kept colliding after every retry."""

    def __init__(self, case_id: object, attempts: int) -> None:
        super().__init__(
            f"Could not assign an analysis version number for case {case_id} "
            f"after {attempts} attempts"
        )
        self.case_id = case_id
        self.attempts = attempts


class ImmutableVersionError(CaseBrainError):
    """Stored analysis versions are append-only."""
