import asyncio
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, Field


class CompletionOptions(BaseModel):
    """Generation parameters for a single completion request."""

    temperature: float = Field(0.7, ge=0.0, le=2.0)
    n_predict: int = Field(256, gt=0)
    stop: list[str] = Field(default_factory=list)
    grammar: Optional[str] = None

    def to_payload(self, prompt: str) -> dict:
        payload = {
            "prompt": prompt,
            "n_predict": self.n_predict,
            "temperature": self.temperature,
            "stop": self.stop,
        }
        if self.grammar:
            payload["grammar"] = self.grammar
        return payload


@dataclass(eq=False)
class PendingRequest:
    """An in-flight completion call and the task that can cancel it."""

    prompt: str
    options: CompletionOptions
    deadline: float
    task: Optional["asyncio.Task"] = field(default=None, repr=False)

    def cancel(self) -> None:
        if self.task is not None and not self.task.done():
            self.task.cancel()
