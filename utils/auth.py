from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config.settings import Settings
from models.user import Session, SessionUser, TokenData

# JWT bearer scheme
security = HTTPBearer()

# Tokens are normally minted by the identity provider; this helper is for
# local development and tests.
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, Settings.SECRET_KEY, algorithm=Settings.ALGORITHM)
    return encoded_jwt

def verify_token(token: str, credentials_exception) -> TokenData:
    """Verify and decode a JWT token."""
    try:
        payload = jwt.decode(token, Settings.SECRET_KEY, algorithms=[Settings.ALGORITHM])
        email: str = payload.get("email") or payload.get("sub")
        if email is None:
            raise credentials_exception
        exp = payload.get("exp")
        return TokenData(
            email=email,
            name=payload.get("name"),
            image=payload.get("picture") or payload.get("image"),
            expires=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
        )
    except JWTError:
        raise credentials_exception

def get_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """Raw bearer token, forwarded to the completion endpoint."""
    return credentials.credentials

def get_current_user(token: str = Depends(get_token)) -> dict:
    """Get the current authenticated user from JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = verify_token(token, credentials_exception)
    return {
        "email": token_data.email,
        "name": token_data.name,
        "image": token_data.image,
        "expires": token_data.expires,
    }

def get_session(current_user: dict = Depends(get_current_user)) -> Session:
    """Session object in the shape the identity provider hands to clients."""
    return Session(
        user=SessionUser(
            email=current_user["email"],
            name=current_user.get("name"),
            image=current_user.get("image"),
        ),
        expires=current_user.get("expires"),
    )
