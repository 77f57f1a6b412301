"""
Exception types raised across the classification pipeline and history ledger
"""


class EcoSortError(Exception):
    """Base class for all EcoSort errors"""


class SourceUnavailableError(EcoSortError):
    """A model-backed classification source could not load or run"""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} unavailable: {reason}")


class InvalidInputError(EcoSortError):
    """The uploaded file is not an image or cannot be decoded"""

    def __init__(self, message: str, remediation: str = ""):
        self.remediation = remediation or (
            "Please select an image file (JPG, PNG, WEBP) and try again. "
            "Descriptive filenames such as \"plastic-bottle.jpg\" improve accuracy."
        )
        super().__init__(message)


class ExhaustedPipelineError(EcoSortError):
    """Every classification source failed, including the heuristic fallback"""


class LedgerWriteError(EcoSortError):
    """The history ledger could not be persisted"""
