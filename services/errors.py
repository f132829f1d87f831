"""
Errors raised by the styling services
"""


class StylingServiceError(Exception):
    """An external service call failed; the message is shown to the user"""
