"""
Error taxonomy for the ingestion pipeline.

Every error except OrchestratorFatalError is recovered locally by the
component that raises it; see the call sites in ingestion/ and agents/.
"""


class TrackerError(Exception):
    """Base class for all pipeline errors."""


class SourceFetchError(TrackerError):
    """Network, HTTP or parse failure while retrieving one source's content."""

    def __init__(self, source_name: str, message: str):
        self.source_name = source_name
        super().__init__(f"{source_name}: {message}")


class HostNotAllowed(SourceFetchError):
    """Destination hostname is not on the relay allow-list. Never retried."""

    def __init__(self, source_name: str, hostname: str):
        self.hostname = hostname
        super().__init__(source_name, f"Host not allowed: {hostname}")


class ExtractionParseError(TrackerError):
    """Model response for extraction is not valid JSON or has the wrong shape."""


class DuplicateCheckError(TrackerError):
    """Model call or parse failure during the duplicate check."""


class PersistenceError(TrackerError):
    """Write (or lookup-for-write) failure in the document store."""


class OrchestratorFatalError(TrackerError):
    """Failure outside every per-source/per-item guard; aborts the run."""


class RecordNotFound(PersistenceError):
    """Lookup-for-write found no record with the given id."""
