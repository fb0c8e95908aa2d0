"""JWT Token Verification"""
from jose import jwt
from typing import Dict, Optional


class JWTVerifier:
    """Verifies dashboard tokens signed with the shared secret"""

    def __init__(self, secret: str, algorithm: str = "HS256", issuer: Optional[str] = None):
        self.secret = secret
        self.algorithm = algorithm
        self.issuer = issuer

    def verify_and_decode(self, token: str) -> Dict:
        """
        Verify JWT token signature and decode payload

        Raises:
            JWTError: Token is invalid or expired
        """
        options = {"verify_aud": False}
        if not self.issuer:
            options["verify_iss"] = False

        return jwt.decode(
            token,
            self.secret,
            algorithms=[self.algorithm],
            issuer=self.issuer,
            options=options,
        )

    def encode(self, claims: Dict) -> str:
        """Sign a set of claims. Used by tooling and tests to mint tokens."""
        if self.issuer and "iss" not in claims:
            claims = {**claims, "iss": self.issuer}
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)
