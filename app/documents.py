"""
References to rendered artifacts (minutes, signed board forms).

Rendering itself happens in the document service; the portal only decides
whether there is something to render and hands out where to fetch it.
"""

import hashlib
from typing import Literal

from pydantic import BaseModel

from app.config import Settings


class RenderedDocument(BaseModel):
    kind: Literal["minutes", "signed_form"]
    source_id: str
    download_url: str
    revision: str | None = None
    signature_path: str | None = None


def _content_revision(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:12]


async def render_minutes(
    meeting_id: str, content: str, *, settings: Settings
) -> RenderedDocument:
    # revision tracks the minutes text
    base = settings.document_base_url.rstrip("/")
    revision = _content_revision(content)
    return RenderedDocument(
        kind="minutes",
        source_id=meeting_id,
        download_url=f"{base}/minutes/{meeting_id}.pdf?rev={revision}",
        revision=revision,
    )


async def render_signed_form(
    person_id: str, form_id: str, signature_path: str, *, settings: Settings
) -> RenderedDocument:
    base = settings.document_base_url.rstrip("/")
    return RenderedDocument(
        kind="signed_form",
        source_id=form_id,
        download_url=f"{base}/forms/{form_id}.pdf?volunteerId={person_id}",
        signature_path=signature_path,
    )
