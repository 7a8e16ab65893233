"""
Users Router - profile lookups for authenticated callers.
"""
from fastapi import APIRouter, Depends

from ..dependencies import AuthContext, get_credential_store, require_authentication
from ..errors import AuthError, AuthErrorKind
from ..schemas import UserPublic, to_public_user
from ..store import CredentialStore

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserPublic)
def read_current_user(
    auth: AuthContext = Depends(require_authentication),
    store: CredentialStore = Depends(get_credential_store),
):
    user = store.get_by_id(auth.user_id)
    if user is None:
        raise AuthError(AuthErrorKind.NOT_FOUND, "The authenticated user no longer exists.")
    return to_public_user(user)


@router.get("/{user_id}", response_model=UserPublic)
def read_user(
    user_id: str,
    auth: AuthContext = Depends(require_authentication),
    store: CredentialStore = Depends(get_credential_store),
):
    user = store.get_by_id(user_id)
    if user is None:
        raise AuthError(AuthErrorKind.NOT_FOUND, f"No user with id {user_id}.")
    return to_public_user(user)
