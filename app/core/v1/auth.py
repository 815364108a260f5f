"""Authentication handler for the admin portal."""

import hmac
import jwt
from datetime import datetime, timedelta, timezone
from typing import Dict, Any
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.settings.v1.settings import SETTINGS
from app.core.v1.exceptions import UnauthorizedException
from app.core.v1.log_manager import LogManager


# Initialize security scheme
security = HTTPBearer(auto_error=False)


class AuthManager:
    """
    Admin gate: a single configured credential exchanged for a JWT.
    """

    def __init__(self):
        """Initialize Authentication Manager."""
        self.logger = LogManager(__name__)
        self.username = SETTINGS.GENERAL.ADMIN_USERNAME
        self.password = SETTINGS.GENERAL.ADMIN_PASSWORD
        self.secret_key = SETTINGS.GENERAL.JWT_SECRET_KEY
        self.algorithm = SETTINGS.GENERAL.JWT_ALGORITHM
        self.expiration_time = SETTINGS.GENERAL.JWT_EXPIRATION_TIME

    def check_credentials(self, username: str, password: str) -> bool:
        """Compare against the configured admin credential."""
        username_ok = hmac.compare_digest((username or "").encode(), self.username.encode())
        password_ok = hmac.compare_digest((password or "").encode(), self.password.encode())
        return username_ok and password_ok

    def login(self, username: str, password: str) -> Dict[str, Any]:
        """Exchange the admin credential for an access token.

        Raises:
            UnauthorizedException: If the credential does not match.
        """
        if not self.check_credentials(username, password):
            self.logger.warning("Admin login rejected", username=username)
            raise UnauthorizedException("Invalid username or password")

        token = self.create_access_token({"sub": username, "role": "admin"})
        self.logger.info("Admin logged in", username=username)

        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_in": self.expiration_time
        }

    def create_access_token(self, data: Dict[str, Any]) -> str:
        """Create a new access token.

        Args:
            data (Dict[str, Any]): Token payload data.

        Returns:
            str: Generated JWT token.
        """
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + timedelta(seconds=self.expiration_time)
        to_encode.update({"exp": expire})

        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Verify and decode JWT token.

        Args:
            token (str): JWT token to verify.

        Returns:
            Dict[str, Any]: Decoded token payload.

        Raises:
            UnauthorizedException: If token verification fails.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            self.logger.warning("Token has expired")
            raise UnauthorizedException("Token has expired")
        except jwt.InvalidTokenError as err:
            self.logger.warning(f"Invalid token: {err}")
            raise UnauthorizedException(f"Invalid token: {err}")

        if payload.get("role") != "admin" or not payload.get("sub"):
            raise UnauthorizedException("Could not validate credentials")

        return payload


# Initialize global auth manager
auth_manager = AuthManager()


def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict[str, Any]:
    """FastAPI dependency guarding admin routes.

    Raises:
        HTTPException: 401 if the bearer token is missing or invalid.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = auth_manager.verify_token(credentials.credentials)
    except UnauthorizedException as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=err.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from err

    return {"username": payload["sub"], "role": payload["role"]}
