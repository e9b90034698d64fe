from __future__ import annotations


class BookingEngineError(Exception):
    error_code = "BOOKING_ENGINE_ERROR"
    status_code = 500

    def __init__(self, human_message: str) -> None:
        super().__init__(human_message)
        self.human_message = human_message

    def to_payload(self) -> dict[str, object]:
        return {
            "ok": False,
            "error_code": self.error_code,
            "human_message": self.human_message,
        }


class NotFoundError(BookingEngineError):
    error_code = "NOT_FOUND"
    status_code = 404


class ConflictError(BookingEngineError):
    error_code = "CONFLICT"
    status_code = 409


class ValidationFailedError(BookingEngineError):
    error_code = "VALIDATION"
    status_code = 400


class InvalidTransitionError(BookingEngineError):
    error_code = "INVALID_TRANSITION"
    status_code = 400
