"""
Exception taxonomy for the mission packaging pipeline.

Every error carries the satellite index (0-based, ``None`` for
mission-level failures), the offending input field when there is one,
and the pipeline stage that raised it. Each class also derives from the
closest builtin so ``except ValueError`` style handlers keep working.
"""


class CosmopackError(Exception):
    """Base class for all pipeline errors."""

    stage = "pipeline"

    def __init__(self, message: str, index: int | None = None,
                 field: str | None = None, stage: str | None = None):
        self.message = message
        self.index = index
        self.field = field
        if stage is not None:
            self.stage = stage
        super().__init__(self._format())

    def _format(self) -> str:
        parts = []
        if self.index is not None:
            parts.append(f"sat #{self.index + 1}")
        if self.field is not None:
            parts.append(f"field '{self.field}'")
        prefix = ", ".join(parts)
        return f"[{self.stage}] {prefix}: {self.message}" if prefix else f"[{self.stage}] {self.message}"

    def __str__(self) -> str:
        return self._format()


class SchemaError(CosmopackError, ValueError):
    """Record does not match the declared field set or field types."""

    stage = "validate"


class ShapeError(CosmopackError, ValueError):
    """Numeric arrays have the wrong dimensions or non-finite values."""

    stage = "validate"


class TimeSystemError(CosmopackError, RuntimeError):
    """Leap-second data missing or calendar fields out of range."""

    stage = "time"


class DataOrderError(CosmopackError, ValueError):
    """Sample times are not strictly increasing."""

    stage = "time"


class KernelIOError(CosmopackError, OSError):
    """Kernel file could not be created, written or renamed."""

    stage = "kernel"


class VerificationError(CosmopackError, RuntimeError):
    """A written kernel reads back differently from what was written."""

    stage = "verify"


class UnknownBodyError(CosmopackError, KeyError):
    """A NAIF body ID has no known name."""

    stage = "catalog"

    # KeyError.__str__ would repr() the message
    def __str__(self) -> str:
        return self._format()
