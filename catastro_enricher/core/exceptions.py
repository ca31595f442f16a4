"""Custom exception hierarchy for the Cadastre Enricher domain."""

from __future__ import annotations


class ProcessingError(RuntimeError):
    """Raised when the processing pipeline fails."""

    def __init__(self, message: str, *, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def as_dict(self) -> dict:
        """Return a serializable representation."""
        payload = {"message": str(self)}
        if self.details:
            payload["details"] = self.details
        return payload


class InputFileNotFound(ProcessingError):
    """An input file does not exist."""


class MissingColumn(ProcessingError):
    """A tabular source lacks a required header column."""


class EmptyLookupTable(ProcessingError):
    """A tabular source produced no usable rows."""


class NotAFeatureCollection(ProcessingError):
    """A JSON document is not a GeoJSON ``FeatureCollection``."""


class Undecodable(ProcessingError):
    """A JSON payload could not be parsed by any decoding strategy."""


class EncodeFailure(ProcessingError):
    """An updated document could not be serialized."""


class LookupFailure(ProcessingError):
    """Base class for failures of a single remote lookup."""


class TransportFailure(LookupFailure):
    """The request never produced an HTTP response."""


class HttpStatusFailure(LookupFailure):
    """The service answered with a non-2xx status."""

    def __init__(self, status: int, *, details: dict | None = None):
        super().__init__(f"HTTP {status}", details=details)
        self.status = status


class MalformedJson(LookupFailure):
    """The response body is not valid JSON."""
