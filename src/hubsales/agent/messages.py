import base64
import logging
from typing import Any, Dict, List, Sequence

from ..errors import BlobStorageError
from ..models import Attachment, ChatMessage, SessionContext
from ..services.storage import S3BlobStorage

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}


def _money(value: float) -> str:
    if float(value).is_integer():
        return f"${value:,.0f}"
    return f"${value:,.2f}"


def render_context(context: SessionContext | None) -> str:
    """Render the non-empty context fields as one labeled markdown line each."""
    if context is None or context.is_empty():
        return ""
    lines: List[str] = []
    if context.brand_name:
        url = f" ({context.brand_url})" if context.brand_url else ""
        lines.append(f"- **Brand:** {context.brand_name}{url}")
    elif context.brand_url:
        lines.append(f"- **Brand URL:** {context.brand_url}")
    if context.budget_monthly is not None:
        lines.append(f"- **Monthly Budget:** {_money(context.budget_monthly)}")
    if context.budget_total is not None:
        lines.append(f"- **Total Budget:** {_money(context.budget_total)}")
    if context.campaign_duration:
        lines.append(f"- **Duration:** {context.campaign_duration}")
    if context.target_audience:
        lines.append(f"- **Target Audience:** {context.target_audience}")
    if context.geographic_focus:
        lines.append(f"- **Geographic Focus:** {context.geographic_focus}")
    if context.objectives:
        lines.append(f"- **Objectives:** {', '.join(context.objectives)}")
    if context.notes:
        lines.append(f"- **Notes:** {context.notes}")
    return "\n".join(lines)


def build_system_prompt(
    template: str, hub_name: str | None, context: SessionContext | None
) -> str:
    """Static assistant instructions for the hub plus the current session context."""
    prompt = template.replace("{hub_name}", hub_name or "your hub")
    rendered = render_context(context)
    if rendered:
        prompt += f"\n\n## Current Conversation Context\n{rendered}\n"
    return prompt


def select_history(
    prior_messages: Sequence[ChatMessage], window: int
) -> List[Dict[str, Any]]:
    """Keep the most recent `window` prior messages, oldest first."""
    if window <= 0:
        return []
    return [
        {"role": "user" if m.role == "user" else "assistant", "content": m.content}
        for m in list(prior_messages)[-window:]
    ]


async def _load_image(
    attachment: Attachment, storage: S3BlobStorage | None
) -> bytes | None:
    if attachment.data is not None:
        return attachment.data
    if not attachment.storage_key or storage is None:
        logger.warning(
            "Image attachment %s has no data and no storage to load it from",
            attachment.filename,
        )
        return None
    try:
        return await storage.get_bytes(attachment.storage_key)
    except BlobStorageError as e:
        logger.warning("Failed to load image attachment: %s (%s)", attachment.filename, e)
        return None


async def build_user_content(
    user_message: str,
    attachments: Sequence[Attachment] | None,
    storage: S3BlobStorage | None,
) -> List[Dict[str, Any]]:
    """Build the content parts of the new user turn.

    Images come first, then the extracted text of documents, then the
    message itself, so attached material is read before the question.
    """
    images: List[Dict[str, Any]] = []
    documents: List[Dict[str, Any]] = []
    for att in attachments or []:
        if att.is_image:
            if att.mime_type not in IMAGE_MIME_TYPES:
                logger.warning(
                    "Skipping image attachment %s with unsupported type %s",
                    att.filename,
                    att.mime_type,
                )
                continue
            data = await _load_image(att, storage)
            if data is None:
                continue
            encoded = base64.b64encode(data).decode("ascii")
            images.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{att.mime_type};base64,{encoded}"},
                }
            )
        elif att.extracted_text:
            documents.append(
                {
                    "type": "text",
                    "text": f"[Attached file: {att.filename}]\n{att.extracted_text}\n[End of file]",
                }
            )
    return images + documents + [{"type": "text", "text": user_message}]


async def build_conversation(
    prior_messages: Sequence[ChatMessage],
    history_window: int,
    user_message: str,
    attachments: Sequence[Attachment] | None,
    storage: S3BlobStorage | None,
) -> List[Dict[str, Any]]:
    """Assemble the ordered conversation (history window plus new user turn)."""
    messages = select_history(prior_messages, history_window)
    messages.append(
        {
            "role": "user",
            "content": await build_user_content(user_message, attachments, storage),
        }
    )
    return messages
