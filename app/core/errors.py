"""
Domain exceptions raised by the dispatch core.

Expected business outcomes (time-window block, no kitchens in range, wrong
current status) are not exceptions; they come back as ``success=False``
results. These classes cover bad input and missing records only.
"""


class DispatchError(Exception):
    """Base class for errors the HTTP layer maps to a 400 response."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DispatchError):
    """Malformed or incomplete input, rejected before any write."""


class InvalidCoordinates(DispatchError):
    """A latitude/longitude pair did not parse to finite numbers."""


class NotFoundError(DispatchError):
    """A looked-up record does not exist."""


class MachineNotFound(NotFoundError):
    def __init__(self, machine_id: str):
        super().__init__(f"Machine {machine_id} not found")


class RequestNotFound(NotFoundError):
    def __init__(self, request_id: str):
        super().__init__(f"Request with ID {request_id} not found")


class StatusUpdateNotFound(NotFoundError):
    def __init__(self, request_id: str, user_id: str):
        super().__init__(
            f"No matching request found for userId {user_id} and requestId {request_id}"
        )


class KitchenNotFound(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__(f"Kitchen {user_id} not found")


class AgentNotFound(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__(f"Delivery agent {user_id} not found")
