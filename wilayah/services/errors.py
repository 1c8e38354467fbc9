from __future__ import annotations


class DataSourceError(RuntimeError):
    """Base class for failures talking to a remote data service."""


class TransportError(DataSourceError):
    """Network failure, timeout, or a non-2xx response."""


class MalformedResponse(DataSourceError):
    """The service answered, but not with the payload shape we expect."""
