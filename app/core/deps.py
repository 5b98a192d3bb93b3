from dataclasses import dataclass

from fastapi import Request, HTTPException

from app.core.config import SERVICE_ACCOUNT_EMAIL_SUFFIX
from app.core.security import decode_access_token


@dataclass(frozen=True)
class AuthContext:
    uid: str
    email: str = ""

    @property
    def is_service_account(self) -> bool:
        return bool(SERVICE_ACCOUNT_EMAIL_SUFFIX) and self.email.endswith(SERVICE_ACCOUNT_EMAIL_SUFFIX)


def get_auth_context(request: Request) -> AuthContext:
    auth_header = request.headers.get("authorization") or ""

    if not auth_header.startswith("Bearer "):
        print(f"[AUTH] reject reason=missing_bearer path={request.url.path}", flush=True)
        raise HTTPException(status_code=401, detail="Missing bearer token")

    token = auth_header[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Invalid bearer token")

    payload = decode_access_token(token)
    if not payload:
        print(f"[AUTH] reject reason=invalid_token path={request.url.path}", flush=True)
        raise HTTPException(status_code=401, detail="Unauthorized")

    uid = payload.get("uid") or payload.get("sub")
    if not uid or not isinstance(uid, str):
        print(f"[AUTH] reject reason=no_subject path={request.url.path}", flush=True)
        raise HTTPException(status_code=401, detail="Invalid decoded token")

    email = payload.get("email")
    return AuthContext(uid=uid, email=email if isinstance(email, str) else "")


def ensure_target_access(auth: AuthContext, target_uid: str) -> str:
    """Only the owner or a service account may touch a user's progression."""
    target = (target_uid or "").strip()
    if not target:
        raise HTTPException(status_code=400, detail="Missing uid")
    if not auth.is_service_account and target != auth.uid:
        raise HTTPException(status_code=403, detail="Forbidden")
    return target
