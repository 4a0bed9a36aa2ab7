from dataclasses import dataclass

from fastapi import Header, HTTPException, status

from mohs.db.session import SessionLocal


@dataclass(frozen=True)
class RequestContext:
    tenant_id: str
    user_id: str | None = None


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_context(
    x_tenant_id: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> RequestContext:
    if not x_tenant_id or not x_tenant_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-Tenant-ID header is required")
    return RequestContext(tenant_id=x_tenant_id.strip(), user_id=x_user_id)
