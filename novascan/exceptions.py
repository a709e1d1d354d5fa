"""Exception types raised by nova-scanner."""


class NovaScannerError(Exception):
    """Base class for all nova-scanner errors."""


class ConfigError(NovaScannerError):
    """Configuration could not be loaded or failed validation."""


class ScanError(NovaScannerError):
    """A scan type failed as a whole; no results from it may be used."""

    def __init__(self, scan_type: str, message: str):
        super().__init__(f"{scan_type} scan failed: {message}")
        self.scan_type = scan_type


class SourceUnavailableError(ScanError):
    """The Nova binary could not be run, exited non-zero, or timed out."""


class InventoryParseError(ScanError):
    """Nova output could not be decoded with any known schema."""


class TrackerError(NovaScannerError):
    """An issue tracker call failed."""

    operation = "unknown"


class TrackerQueryError(TrackerError):
    """Searching for an existing issue failed."""

    operation = "search"


class TrackerCreateError(TrackerError):
    """Creating an issue failed."""

    operation = "create"


class MetricsPushError(NovaScannerError):
    """Pushing metrics to the Pushgateway failed."""
