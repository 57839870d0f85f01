"""
Session credentials: HS256 JWTs binding a user id and username.

Credentials carry no ``exp`` claim and stay valid until the signing secret
changes. The codec is a pure function of the secret it is constructed with.
"""

from dataclasses import dataclass
from typing import Optional

from jose import JWTError, jwt

ALGORITHM = "HS256"
BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Identity:
    """The authenticated principal carried inside a credential."""
    user_id: str
    username: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"userId": self.user_id, "username": self.username}


class CredentialCodec:
    """Signs and verifies session credentials with a fixed secret."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Signing secret must not be empty")
        self._secret = secret

    def issue(self, identity: Identity) -> str:
        """Sign an identity. The same identity always yields the same token."""
        claims = {"userId": identity.user_id, "username": identity.username}
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, credential: Optional[str]) -> Optional[Identity]:
        """
        Recover the identity from a credential.

        Returns None for anything that is not a well-formed token signed with
        this codec's secret, including tokens whose claims are missing or
        are not strings. Never raises.
        """
        if not credential or not isinstance(credential, str):
            return None
        try:
            claims = jwt.decode(
                credential,
                self._secret,
                algorithms=[ALGORITHM],
                options={"verify_aud": False},
            )
        except (JWTError, ValueError, TypeError):
            return None

        user_id = claims.get("userId")
        username = claims.get("username")
        if not isinstance(user_id, str) or not isinstance(username, str):
            return None
        if not user_id or not username:
            return None
        return Identity(user_id=user_id, username=username)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None
