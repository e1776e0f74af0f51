"""
Custom exceptions for the kessan package.
"""

from typing import Dict, List, Optional


class KessanError(Exception):
    """Base exception for assistant errors."""
    pass


class ParseError(KessanError):
    """Error during attachment parsing."""
    pass


class UnsupportedFileTypeError(ParseError):
    """File type is not supported."""
    pass


class ConfigurationError(KessanError):
    """Required provider settings are missing."""
    def __init__(self, missing: List[str], present: Optional[Dict[str, bool]] = None):
        super().__init__(
            "Missing required environment variables: " + ", ".join(missing)
        )
        self.missing = list(missing)
        self.present = dict(present or {})


class ProviderError(KessanError):
    """Error talking to the LLM provider."""
    pass


class ProviderHTTPError(ProviderError):
    """Provider answered with a non-success status."""
    def __init__(self, message: str, status_code: int, body: str):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProviderResponseError(ProviderError):
    """Provider body could not be decoded as JSON."""
    def __init__(self, message: str, body: str):
        super().__init__(message)
        self.body = body


class NothingToExportError(KessanError):
    """The conversation holds no assistant answer to export."""
    pass
