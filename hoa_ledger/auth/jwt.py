from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from ..config import settings
from ..core.errors import AuthorizationError
from ..models.ledger import Actor, Role
from ..services.policy import authorize
from ..services.store import LedgerStore

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def _create_token(data: dict, expires_minutes: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode = data.copy()
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(actor: Actor) -> str:
    payload = {
        "sub": actor.id,
        "name": actor.display_name,
        "role": actor.role.value,
        "memberId": actor.member_id,
        "type": "access",
    }
    return _create_token(payload, settings.access_token_expire_minutes)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def get_store(request: Request) -> LedgerStore:
    return request.app.state.ledger_store


def get_current_actor(token: str = Depends(oauth2_scheme), store: LedgerStore = Depends(get_store)) -> Actor:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
        subject: Optional[str] = payload.get("sub")
        role = Role(payload.get("role"))
        if subject is None or payload.get("type") not in (None, "access"):
            raise credentials_exception
    except (JWTError, ValueError):
        raise credentials_exception

    if role == Role.MEMBER:
        member = store.find_member(payload.get("memberId") or "")
        if member is None or not member.active:
            raise credentials_exception
        return Actor(id=member.id, display_name=member.name, role=Role.MEMBER, member_id=member.id)

    credentials = store.admin_credentials
    if credentials is None or credentials.username != subject:
        raise credentials_exception
    return Actor(id=subject, display_name=payload.get("name") or subject, role=Role.ADMIN)


def require_capability(capability: str):
    def capability_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        try:
            return authorize(actor, capability)
        except AuthorizationError as exc:
            raise HTTPException(status_code=403, detail=exc.message) from exc

    return capability_checker
