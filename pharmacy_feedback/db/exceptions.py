"""Storage layer exceptions"""
from fastapi import HTTPException, status


class StorageException(HTTPException):
    """Raised when the database cannot complete a read or write"""
    def __init__(self, operation: str = None):
        detail = "Storage unavailable"
        if operation:
            detail = f"Storage unavailable while trying to {operation}"
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
