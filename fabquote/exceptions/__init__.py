"""Custom exceptions for the FabQuote engine."""

class FabQuoteError(Exception):
    """Base exception for all engine errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class ValidationError(FabQuoteError):
    """Raised for bad input: amounts, quantities, missing selections."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class InvalidTransitionError(ValidationError):
    """Raised when a document status change is not allowed."""
    def __init__(self, current, requested, kind='document'):
        message = f"Cannot move {kind} from {current} to {requested}"
        super().__init__(message, status_code=409, payload={'current': current, 'requested': requested})

class UnsupportedFileTypeError(ValidationError):
    """Raised when no geometry parser handles a file extension."""
    def __init__(self, extension):
        super().__init__(f"Unsupported file type: {extension}", status_code=415)
        self.extension = extension

class NotFoundError(FabQuoteError):
    """Exception raised when a document or record is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class PersistenceError(FabQuoteError):
    """Raised when the key-value store fails to read or write."""
    def __init__(self, message="Storage unavailable", key=None):
        super().__init__(message, 503, {'key': key} if key else None)
        self.key = key

class ReferentialGap(FabQuoteError):
    """
    Raised when a document points at a customer or catalog entry that no
    longer exists. Not fatal: renderers show a placeholder instead.
    """
    def __init__(self, message, ref_type=None, ref_id=None):
        super().__init__(message, 422, {'ref_type': ref_type, 'ref_id': ref_id})
        self.ref_type = ref_type
        self.ref_id = ref_id
