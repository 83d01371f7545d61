class HelpdeskException(Exception):
    """Base exception for the application."""
    pass

class NotFoundException(HelpdeskException):
    """A requested record does not exist."""
    pass

class WebhookDeliveryError(HelpdeskException):
    """A webhook endpoint could not be reached or answered with an error."""
    pass
