"""Exception types raised during fingerprint extraction."""


class FingerprintError(Exception):
    """Base class for fingerprint extraction errors."""

    pass


class FormatError(FingerprintError):
    """Raised when a haplotype map row or variant record has the wrong shape."""

    def __init__(self, message: str, source: str | None = None, line: int | None = None):
        self.source = source
        self.line = line
        location = ""
        if source and line is not None:
            location = f"{source}:{line}: "
        elif source:
            location = f"{source}: "
        elif line is not None:
            location = f"line {line}: "
        super().__init__(f"{location}{message}")
        self.message = message


class ExtractionCancelled(FingerprintError):
    """Raised when a caller aborts the scan between records."""

    pass
