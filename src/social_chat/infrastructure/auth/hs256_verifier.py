from __future__ import annotations

import logging

import jwt

from social_chat.application.exceptions import AuthError
from social_chat.domain.entities.identity import Identity

logger = logging.getLogger(__name__)


class HS256Verifier:
    """Verify JWTs signed with a shared secret by the account service."""

    def __init__(self, secret: str, algorithm: str = "HS256", leeway: int = 0) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._leeway = leeway

    async def verify(self, token: str) -> Identity:
        if not token:
            raise AuthError("No token provided")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                leeway=self._leeway,
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthError("Token expired") from exc
        except jwt.PyJWTError as exc:
            raise AuthError("Invalid token") from exc

        # accounts issued before the sub claim carry the id as _id
        subject = payload.get("sub") or payload.get("_id")
        if not subject:
            logger.warning("Token without subject claim rejected")
            raise AuthError("Invalid token payload")
        return Identity(
            id=str(subject),
            username=str(payload.get("username", "")),
        )
