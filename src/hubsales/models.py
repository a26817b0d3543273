from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class SessionContext:
    """Conversation-scoped sales facts captured by the assistant."""

    brand_name: Optional[str] = None
    brand_url: Optional[str] = None
    budget_monthly: Optional[float] = None
    budget_total: Optional[float] = None
    campaign_duration: Optional[str] = None
    target_audience: Optional[str] = None
    geographic_focus: Optional[str] = None
    objectives: Optional[List[str]] = None
    notes: Optional[str] = None

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionContext":
        """Build a context from a stored mapping, ignoring unknown keys."""
        known = set(cls.field_names())
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """Return only the fields that carry a value."""
        return {k: v for k, v in asdict(self).items() if not is_blank(v)}

    def is_empty(self) -> bool:
        return not self.to_dict()


def is_blank(value: Any) -> bool:
    """True for values that must never overwrite a stored context field."""
    return value is None or value == "" or value == []


@dataclass
class GeneratedArtifact:
    """A durably stored file produced by the generate_file tool."""

    id: str
    filename: str
    file_type: str
    storage_key: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "file_type": self.file_type,
            "storage_key": self.storage_key,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedArtifact":
        created = data.get("created_at")
        return cls(
            id=data["id"],
            filename=data["filename"],
            file_type=data["file_type"],
            storage_key=data["storage_key"],
            created_at=(
                datetime.fromisoformat(created)
                if isinstance(created, str)
                else datetime.now(timezone.utc)
            ),
        )


@dataclass
class Attachment:
    """A user-supplied file made available to the assistant for one turn."""

    filename: str
    mime_type: str
    is_image: bool = False
    id: Optional[str] = None
    storage_key: Optional[str] = None
    data: Optional[bytes] = None
    extracted_text: Optional[str] = None


@dataclass
class ChatMessage:
    role: str
    content: str


@dataclass
class ToolInvocation:
    """A model-issued request to run one tool."""

    id: str
    name: str
    arguments: str = ""


@dataclass
class ToolExecutionContext:
    hub_id: str
    conversation_id: str
    user_id: str


@dataclass
class ToolOutcome:
    """What a handler (or the dispatcher) hands back for one invocation."""

    content: str
    artifact: Optional[GeneratedArtifact] = None


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class TurnResult:
    """Final answer, artifacts and token usage of one assistant turn."""

    answer: str
    artifacts: List[GeneratedArtifact] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: str = ""
    iterations: int = 0
