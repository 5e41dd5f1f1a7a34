"""Exceptions raised by the extraction pipeline.

Navigation problems and missing selectors are tolerated: the job keeps
going with whatever DOM it has. Write failures, crashed sessions and the
job-level timeout are fatal.
"""


class ExtractionError(Exception):
    """Base class for every pipeline error."""


class NavigationError(ExtractionError):
    """The page did not finish loading cleanly."""


class NavigationTimeout(NavigationError):
    """Navigation exceeded the configured timeout."""


class SelectorNotFound(ExtractionError):
    """An expected element never appeared, or a selector was unusable."""


class ExtractionFailure(ExtractionError):
    """A single sub-extractor failed; the job continues without its output."""

    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} failed: {cause}")


class WriteFailure(ExtractionError):
    """One of the output artifacts could not be written."""


class SessionCrash(ExtractionError):
    """The browser, context or page went away mid-job."""


class JobTimeout(ExtractionError):
    """The whole job ran past its time budget and was cancelled."""
