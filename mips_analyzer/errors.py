class AnalyzerError(Exception):
    """Base class for every error raised by mips_analyzer."""


class SignalTableError(AnalyzerError):
    """The control-signal table is missing, unreadable or inconsistent."""


class InvalidInputError(AnalyzerError, ValueError):
    def __init__(self, message, token=None):
        super().__init__(message)
        self.token = token


class TraceFormatError(AnalyzerError):
    """A trace source cannot be used to produce instruction events."""


class ExportError(AnalyzerError):
    def __init__(self, destination, cause):
        super().__init__(f"Could not write '{destination}': {cause}")
        self.destination = destination
        self.cause = cause
