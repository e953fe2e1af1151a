"""Exception types."""


class Appraisal2JsonError(Exception):
    """Base class for errors raised by this package."""


class MalformedDocumentError(Appraisal2JsonError):
    """Input is empty or holds no usable text."""


class DocumentFetchError(Appraisal2JsonError):
    """The document source could not provide a page."""

    def __init__(self, source: str, page_index: int, reason: str):
        self.source = source
        self.page_index = page_index
        self.reason = reason
        super().__init__(f"Could not fetch {source} page {page_index}: {reason}")
