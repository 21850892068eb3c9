"""
Client-side error.
"""

from typing import Optional

NETWORK_ERROR = "NETWORK_ERROR"


class CutshopClientError(Exception):
    """
    A failed request, whatever the cause.

    status_code is 0 when no response was received.
    """

    def __init__(self, status_code: int, code: Optional[str], message: str):
        self.status_code = status_code
        self.code = code or "ERROR"
        self.message = message
        super().__init__(f"{status_code} {self.code}: {message}")
