"""Exception types raised by the detection pipeline."""


class DetectionError(Exception):
    """Base class for detection failures."""


class InvalidInputError(DetectionError, ValueError):
    """The pass cannot start: the root is missing, not a snapshot node, or detached."""


class RecoverableScanError(DetectionError):
    """A single field could not be analysed; the pass skips it and continues."""

    def __init__(self, message: str, field_ref: str = ""):
        super().__init__(message)
        self.field_ref = field_ref


class KnowledgeValidationError(DetectionError, ValueError):
    """Knowledge entries or caller overrides are malformed."""
