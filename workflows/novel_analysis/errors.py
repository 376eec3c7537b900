"""Exception classes for the novel analysis workflow."""

DOCUMENT_TOO_LONG_MESSAGE = (
    "The document is too long: even after chunking, a single part still "
    "exceeds the model's input limit. Check whether the text contains large "
    "amounts of non-prose content."
)


class AnalysisError(Exception):
    """Base novel analysis exception."""

    def __init__(self, message: str, document_name: str | None = None):
        self.message = message
        self.document_name = document_name
        super().__init__(message)


class EmptyInputError(AnalysisError):
    """Document content is empty or whitespace only."""

    pass


class DocumentTooLongError(AnalysisError):
    """A generation call was rejected for exceeding the model's input limit."""

    def __init__(
        self,
        message: str = DOCUMENT_TOO_LONG_MESSAGE,
        document_name: str | None = None,
    ):
        super().__init__(message, document_name=document_name)


class ConcurrentRunError(AnalysisError):
    """A run or chunk already has a generation call in flight."""

    pass
