"""TemplateStore — CRUD for recurrence templates of one owner."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any

from obligations.models import RecurrenceTemplate, RecurrenceType, utc_now_iso
from obligations.validation import validate_template

if TYPE_CHECKING:
    from obligations.docstore import DocumentStore
    from obligations.models import TemplateDraft

logger = logging.getLogger(__name__)

COLLECTION = "recurring_templates"

_IMMUTABLE = {"id", "owner_id", "created_at"}


class TemplateNotFoundError(LookupError):
    """No template with the given ID exists for this owner."""


class TemplateStore:
    """Persists recurrence templates for a single owner.

    Every read and write is scoped to *owner_id*.
    """

    def __init__(self, docs: DocumentStore, owner_id: str) -> None:
        self._docs = docs
        self._owner_id = owner_id

    @property
    def owner_id(self) -> str:
        return self._owner_id

    def _owned(self, doc: dict[str, Any] | None) -> RecurrenceTemplate | None:
        if doc is None or doc.get("owner_id") != self._owner_id:
            return None
        return RecurrenceTemplate.from_doc(doc)

    # -- CRUD ------------------------------------------------------------------

    async def create(self, draft: TemplateDraft) -> RecurrenceTemplate:
        """Validate and insert a template. Nothing is written if validation fails."""
        validate_template(draft)
        template = RecurrenceTemplate.from_draft(draft, doc_id="", owner_id=self._owner_id)
        template.id = await self._docs.insert(COLLECTION, template.to_doc())
        logger.info(
            "Created recurring template: %s (%s, %s)",
            template.name,
            template.recurrence_type,
            template.id,
        )
        return template

    async def get(self, template_id: str) -> RecurrenceTemplate | None:
        """Fetch a template by ID, or None if not found."""
        return self._owned(await self._docs.get(COLLECTION, template_id))

    async def update(self, template_id: str, **changes: Any) -> RecurrenceTemplate:
        """Apply *changes*, re-validating the merged template before writing."""
        current = await self.get(template_id)
        if current is None:
            msg = f"Template not found: {template_id}"
            raise TemplateNotFoundError(msg)

        allowed = {k: v for k, v in changes.items() if k not in _IMMUTABLE and v is not None}
        merged = dataclasses.replace(current, **allowed)
        validate_template(merged)
        merged = RecurrenceTemplate.from_doc({**merged.to_doc(), "id": template_id})
        merged.updated_at = utc_now_iso()

        await self._docs.update(COLLECTION, template_id, merged.to_doc())
        logger.info("Updated recurring template: %s (%s)", merged.name, template_id)
        return merged

    async def delete(self, template_id: str) -> bool:
        """Delete a template. Returns True if a document was removed."""
        if await self.get(template_id) is None:
            return False
        deleted = await self._docs.delete(COLLECTION, template_id)
        if deleted:
            logger.info("Deleted recurring template: %s", template_id)
        return deleted

    # -- Listing ---------------------------------------------------------------

    async def list_all(self) -> list[RecurrenceTemplate]:
        """Every template of the owner, newest first."""
        docs = await self._docs.query_eq(
            COLLECTION, {"owner_id": self._owner_id}, order_by="created_at", descending=True
        )
        return [RecurrenceTemplate.from_doc(doc) for doc in docs]

    async def list_active(self) -> list[RecurrenceTemplate]:
        docs = await self._docs.query_eq(
            COLLECTION,
            {"owner_id": self._owner_id, "is_active": True},
            order_by="created_at",
        )
        return [RecurrenceTemplate.from_doc(doc) for doc in docs]

    async def list_daily(self) -> list[RecurrenceTemplate]:
        """Active daily templates — the ones paid directly."""
        docs = await self._docs.query_eq(
            COLLECTION,
            {
                "owner_id": self._owner_id,
                "recurrence_type": str(RecurrenceType.DAILY),
                "is_active": True,
            },
            order_by="created_at",
        )
        return [RecurrenceTemplate.from_doc(doc) for doc in docs]
