"""Publishing pipeline errors."""


class PublishError(Exception):
    """A required step of the publishing pipeline failed.

    Attributes:
        message: Human-readable description, including the failing href.
        code: Machine-readable code (E_...).
        href: Href being processed when the failure happened, if any.
        collection: Manifest collection the href came from, if any.
    """

    def __init__(
        self,
        message: str,
        code: str = "E_PROCESSING_FAILED",
        *,
        href: str | None = None,
        collection: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.href = href
        self.collection = collection
