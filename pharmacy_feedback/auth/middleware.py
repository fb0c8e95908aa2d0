"""Authentication Middleware"""
import os
from jose import JWTError
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer

from pharmacy_feedback.auth.models import JWTPayload
from pharmacy_feedback.auth.jwt_verifier import JWTVerifier
from pharmacy_feedback.auth.permissions_manager import PermissionsManager


# Initialize components
security = HTTPBearer()
jwt_verifier = JWTVerifier(
    secret=os.getenv("JWT_SECRET", "change-me"),
    algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
    issuer=os.getenv("JWT_ISSUER"),
)
permissions_manager = PermissionsManager()


async def verify_token(credentials = Depends(security)) -> JWTPayload:
    """
    Verify a dashboard JWT and extract payload.

    Expected JWT claims:
    - sub: user_id
    - email: user email (optional)
    - roles: list of role names
    """
    token = credentials.credentials

    try:
        payload = jwt_verifier.verify_and_decode(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}"
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing subject"
        )

    roles = payload.get("roles") or []

    # Map roles to permissions
    permissions = permissions_manager.get_permissions_for_roles(roles)

    return JWTPayload(
        sub=str(payload["sub"]),
        email=payload.get("email"),
        roles=roles,
        permissions=permissions,
        iat=payload.get("iat"),
        exp=payload.get("exp")
    )


def check_permission(jwt_payload: JWTPayload, required_permission: str):
    """
    Check if user has required permission.

    Args:
        jwt_payload: JWT payload containing user permissions
        required_permission: Permission string to check

    Raises:
        HTTPException: If user lacks required permission
    """
    if required_permission not in jwt_payload.permissions:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing required permission: {required_permission}"
        )
