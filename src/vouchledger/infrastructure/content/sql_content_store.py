"""Content store backed by the pages table."""

import json
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vouchledger.core.logging import get_logger
from vouchledger.infrastructure.content.base import ContentStore
from vouchledger.infrastructure.persistence.models import PageModel

logger = get_logger(__name__)


class SqlContentStore(ContentStore):
    """Store attestation pages in the same database as the ledger.

    Pages share the caller's session, so a page and its attestation row
    commit or roll back together.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get(self, path: str) -> PageModel | None:
        result = await self._session.execute(select(PageModel).where(PageModel.path == path))
        return result.scalar_one_or_none()

    async def exists(self, path: str) -> bool:
        return await self._get(path) is not None

    async def create(
        self,
        path: str,
        content: str,
        author_id: int,
        protection_rules: dict[str, str] | None = None,
    ) -> bool:
        if await self.exists(path):
            return False
        model = PageModel(
            path=path,
            content=content,
            author_id=author_id,
            protection_rules=json.dumps(protection_rules or {}, sort_keys=True),
            created_at=datetime.now(timezone.utc),
        )
        self._session.add(model)
        await self._session.flush()
        logger.debug("Page created", path=path, author_id=author_id)
        return True

    async def get_content(self, path: str) -> str | None:
        model = await self._get(path)
        return model.content if model else None

    async def update(self, path: str, content: str, editor_id: int) -> bool:
        model = await self._get(path)
        if model is None:
            return False
        model.content = content
        model.last_editor_id = editor_id
        model.updated_at = datetime.now(timezone.utc)
        await self._session.flush()
        return True

    async def protect(self, path: str, rules: dict[str, str]) -> bool:
        model = await self._get(path)
        if model is None:
            return False
        model.protection_rules = json.dumps(rules, sort_keys=True)
        await self._session.flush()
        return True

    async def get_protection(self, path: str) -> dict[str, str]:
        model = await self._get(path)
        if model is None:
            return {}
        return json.loads(model.protection_rules or "{}")
