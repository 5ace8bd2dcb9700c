"""
Purge documents whose 30-day recovery window has passed.

Meant to be run from cron or a scheduler:

    python -m scripts.purge_trash
"""

import asyncio

from src.config import get_settings
from src.database import async_session_maker, close_db
from src.engines.policy import AuditEvent
from src.kernel.models.audit_log import AuditAction
from src.kernel.policy_factory import build_policy_engine
from src.kernel.state import utcnow
from src.logging_config import configure_logging, get_logger

logger = get_logger("scripts.purge_trash")


async def purge() -> int:
    async with async_session_maker() as session:
        engine = build_policy_engine(session)
        try:
            purged = await engine.purge_expired()
            await engine.record_audit(
                AuditEvent(
                    action=AuditAction.DOCUMENT_PURGE.value,
                    timestamp=utcnow(),
                    resource="document",
                    method="BATCH",
                    url="scripts.purge_trash",
                    details={"purged": purged},
                )
            )
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    return purged


async def main() -> None:
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )
    try:
        purged = await purge()
        logger.info("Purged %d expired document(s)", purged)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
