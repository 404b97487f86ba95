"""Exception taxonomy for beam grouping, splitting and timing."""


class BeamGroupError(Exception):
    """Base class for all errors raised by the beamgroup package."""


class TimingError(BeamGroupError):
    """A time offset or duration needed for a computation is not known."""


class StructuralError(BeamGroupError):
    """
    The relation graph cannot support the requested transformation.

    Typical causes are a degenerate stem glyph, an extension point lying
    outside the stem, or a pivot chord without stem. These errors are not
    recovered inside the core and abort the enclosing processing step.
    """


class StepError(Exception):
    """A processing step failed for one measure stack."""

    def __init__(self, message: str, stack_id: int | None = None) -> None:
        super().__init__(message)
        self.stack_id = stack_id
