from __future__ import annotations


class PriceTrendError(Exception):
    """Base class for every error raised by the price series service."""


# -------------------------
# Store
# -------------------------
class StoreError(PriceTrendError):
    pass


class StoreUnavailable(StoreError):
    """Could not reach the database (connect / transport failure)."""


class StoreQueryFailed(StoreError):
    """Statement was rejected (bad SQL, missing table, constraint violation)."""


# -------------------------
# Range query
# -------------------------
class InvalidRange(PriceTrendError):
    def __init__(self, begin: int, end: int) -> None:
        super().__init__("begin (first value) must be <= end (second value)")
        self.begin = begin
        self.end = end


# -------------------------
# External price source
# -------------------------
class UpstreamError(PriceTrendError):
    pass


class UpstreamUnreachable(UpstreamError):
    """Request was issued but failed (network, timeout, non-2xx)."""


class UpstreamMalformed(UpstreamError):
    """Response arrived but could not be parsed into a sample."""


class UpstreamSetupError(UpstreamError):
    """
    Request could not even be built or dispatched (bad URL, unsupported scheme).
    Retrying cannot fix this, so the updater stops on it.
    """


# -------------------------
# Bootstrap
# -------------------------
class BootstrapError(PriceTrendError):
    pass


class BootstrapFileUnreadable(BootstrapError):
    pass


class BootstrapLineMalformed(BootstrapError):
    def __init__(self, line_no: int, line: str, reason: str) -> None:
        super().__init__(f"line {line_no}: {reason}: {line!r}")
        self.line_no = line_no
        self.line = line
        self.reason = reason
