from fastapi import HTTPException, status


class PermissionDenied(HTTPException):
    def __init__(self, message: str = "You don't have permission to do that"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=message,
        )
