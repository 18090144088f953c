from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlmodel import Session

from .config import get_settings
from .database import get_session


def verify_access_key(
    x_access_key: Annotated[str | None, Header(alias="X-Access-Key")] = None
) -> None:
    settings = get_settings()
    if settings.access_key and x_access_key != settings.access_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access key",
        )


AccessGuard = Annotated[None, Depends(verify_access_key)]
SessionDep = Annotated[Session, Depends(get_session)]


def get_or_404(session: Session, model, record_id: int, label: str):
    record = session.get(model, record_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return record
