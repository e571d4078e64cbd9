"""Exceptions raised by the notice tracker."""


class NoticeTrackerError(Exception):
    """Base class for notice tracker failures."""


class SourceUnavailable(NoticeTrackerError):
    """The notice source could not be fetched or parsed."""


class StorageIOError(NoticeTrackerError):
    """Reading or writing the notice store on disk failed."""
