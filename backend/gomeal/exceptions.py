"""Domain errors raised from services and routers."""
from fastapi import HTTPException, status


class MembershipRequiredError(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Join a community first with its invite code via /api/community/join.",
                "status": "UNAPPLIED",
                "action": "JOIN_REQUIRED",
            },
        )


class InsufficientAvailabilityError(HTTPException):
    def __init__(self, available_count: int, required: int):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": f"Register at least {required} available slots first.",
                "code": "INSUFFICIENT_AVAILABILITY",
                "availableCount": available_count,
                "required": required,
            },
        )


class GroupMealNotFoundError(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Group meal not found")


class NoRemainingCapacityError(HTTPException):
    def __init__(self, detail: str = "No remaining capacity"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AlreadyAnsweredError(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail="You have already answered this member")
