from typing import Literal

from fastapi import APIRouter, Depends, Form, HTTPException

from ..auth.jwt import create_access_token, get_current_actor, get_store
from ..models.ledger import Actor
from ..schemas.schemas import Token
from ..services.store import LedgerStore
from ..services.system import authenticate_admin, authenticate_member

router = APIRouter()


class LedgerLoginForm:
    """OAuth2 password form with a role selector.

    Admins send their username and password. Members send their name as
    ``username`` and their apartment number as ``password``.
    """

    def __init__(
        self,
        username: str = Form(...),
        password: str = Form(...),
        role: Literal["admin", "member"] = Form(default="admin"),
    ) -> None:
        self.username = username
        self.password = password
        self.role = role


@router.post("/login", response_model=Token)
def login(form_data: LedgerLoginForm = Depends(), store: LedgerStore = Depends(get_store)) -> Token:
    if form_data.role == "member":
        actor = authenticate_member(store, form_data.username, form_data.password)
        failure = "Member not found. Please check your name and apartment number."
    else:
        actor = authenticate_admin(store, form_data.username, form_data.password)
        failure = "Invalid admin credentials!"
    if actor is None:
        raise HTTPException(status_code=401, detail=failure)
    return Token(
        access_token=create_access_token(actor),
        role=actor.role,
        name=actor.display_name,
        member_id=actor.member_id,
    )


@router.get("/me", response_model=Token)
def read_me(token_actor: Actor = Depends(get_current_actor)) -> Token:
    return Token(
        access_token=create_access_token(token_actor),
        role=token_actor.role,
        name=token_actor.display_name,
        member_id=token_actor.member_id,
    )
