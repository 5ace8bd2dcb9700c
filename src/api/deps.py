"""
FastAPI dependencies for authentication, database sessions and the policy engine.
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.database import async_session_maker
from src.engines.policy import AuditEvent, InfrastructureError, PolicyEngine, Principal
from src.kernel.identity.scope_provider import AuthenticationError, ScopeProvider
from src.kernel.models.user import UserRole
from src.kernel.policy_factory import build_policy_engine
from src.kernel.permissions.subject_directory import SqlSubjectDirectory
from src.kernel.state import utcnow
from src.logging_config import get_logger, principal_id_var

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:
    """Dependency that yields database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_principal(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
) -> Principal:
    """Resolve the caller's principal or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        principal = await ScopeProvider(db).resolve_principal(credentials.credentials)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    # Picked up by the log filter for the rest of the request
    principal_id_var.set(str(principal.id))
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def require_admin(principal: CurrentPrincipal) -> Principal:
    """Require the current principal to be an admin."""
    if principal.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return principal


AdminPrincipal = Annotated[Principal, Depends(require_admin)]


def get_subject_directory(db: DbSession) -> SqlSubjectDirectory:
    return SqlSubjectDirectory(db, get_settings().terminal_level_codes)


def get_policy_engine(db: DbSession) -> PolicyEngine:
    """Policy engine bound to the request's session."""
    return build_policy_engine(db)


Engine = Annotated[PolicyEngine, Depends(get_policy_engine)]
Directory = Annotated[SqlSubjectDirectory, Depends(get_subject_directory)]


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_user_agent(request: Request) -> Optional[str]:
    """Extract user agent from request."""
    return request.headers.get("User-Agent")


async def audit(
    engine: PolicyEngine,
    request: Request,
    principal: Optional[Principal],
    action: str,
    resource: Optional[str] = None,
    resource_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Record an audit event for a successful operation.

    A failed audit write is logged and does not fail the request.
    """
    event = AuditEvent(
        action=action,
        timestamp=utcnow(),
        principal_id=principal.id if principal else None,
        resource=resource,
        resource_id=str(resource_id) if resource_id is not None else None,
        method=request.method,
        url=request.url.path,
        details=details or {},
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    try:
        return await engine.record_audit(event)
    except InfrastructureError as exc:
        logger.error(
            "Audit write failed",
            extra={"action": action, "operation": exc.operation, "error": str(exc)},
        )
        return False
