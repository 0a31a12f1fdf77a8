class CrawlerException(Exception):
    """Base exception for all crawler-related errors."""
    pass

class InvalidIdentifier(CrawlerException):
    """Raised when a composite identifier is not of the form 'owner/name'."""
    def __init__(self, identifier, message: str = "Expected an identifier of the form 'owner/name'."):
        self.identifier = identifier
        super().__init__(f"{message} Got: {identifier!r}")

class MalformedMetadata(CrawlerException):
    """Raised when a repository metadata payload lacks a usable numeric id."""
    pass

class InvalidTimestamp(CrawlerException):
    """Raised when an upstream timestamp is not valid ISO-8601."""
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid ISO-8601 timestamp: {value!r}")

class DatabaseException(CrawlerException):
    """Raised when a database operation fails."""
    pass
