from dataclasses import dataclass, field
from typing import List, Optional

from ..models import GeneratedArtifact, TokenUsage, TurnResult


@dataclass
class TurnAccumulator:
    """Token usage and artifacts gathered across the iterations of one turn."""

    usage: TokenUsage = field(default_factory=TokenUsage)
    artifacts: List[GeneratedArtifact] = field(default_factory=list)
    iterations: int = 0

    def record_model_call(self, input_tokens: int, output_tokens: int) -> None:
        self.iterations += 1
        self.usage.input_tokens += input_tokens
        self.usage.output_tokens += output_tokens

    def record_artifact(self, artifact: Optional[GeneratedArtifact]) -> None:
        if artifact is not None:
            self.artifacts.append(artifact)

    def result(self, answer: str, model: str = "") -> TurnResult:
        return TurnResult(
            answer=answer,
            artifacts=list(self.artifacts),
            usage=TokenUsage(self.usage.input_tokens, self.usage.output_tokens),
            model=model,
            iterations=self.iterations,
        )
