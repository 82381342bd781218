"""
Typed errors for the knowledge base.

Every error carries a machine-readable ``code`` and the HTTP status a
surrounding API layer should use, so callers never have to inspect messages:

- NotInitializedError: operation called before initialize() completed
- IndexLoadError: the knowledge index could not be loaded or is inconsistent
- ResourceNotFoundError: no document with the requested code (404)
- InvalidQueryError: malformed or out-of-range query parameters (400)
- ContentLoadError: document body could not be fetched (absorbed by
  KnowledgeBase.load_resource, which returns a placeholder instead)
"""


class KnowledgeBaseError(Exception):
    """Base class for all knowledge base errors"""

    def __init__(self, message: str, code: str = "KNOWLEDGE_BASE_ERROR", status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class NotInitializedError(KnowledgeBaseError):
    """Knowledge base used before initialize() finished"""

    def __init__(self, message: str = "KnowledgeBase not initialized. Call initialize() first."):
        super().__init__(message, "NOT_INITIALIZED", 503)


class IndexLoadError(KnowledgeBaseError):
    """Knowledge index missing, unreadable or inconsistent"""

    def __init__(self, message: str):
        super().__init__(message, "INDEX_LOAD_FAILED", 500)


class ResourceNotFoundError(KnowledgeBaseError):
    """No resource with the given code"""

    def __init__(self, resource_code: str):
        super().__init__(f"Resource not found: {resource_code}", "RESOURCE_NOT_FOUND", 404)
        self.resource_code = resource_code


class InvalidQueryError(KnowledgeBaseError):
    """Query rejected before any scoring work"""

    def __init__(self, message: str):
        super().__init__(message, "INVALID_QUERY", 400)


class ContentLoadError(KnowledgeBaseError):
    """Document body could not be fetched from its locator"""

    def __init__(self, locator: str, reason: str = ""):
        message = f"Failed to load content from {locator}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, "CONTENT_LOAD_FAILED", 502)
        self.locator = locator
