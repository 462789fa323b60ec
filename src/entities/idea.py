from typing import Optional

from pydantic import BaseModel, Field

# Neither backend reports a confidence; a parsed classification gets this fixed value.
CLASSIFICATION_CONFIDENCE = 0.8


class ClassificationResult(BaseModel):
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    confidence: float = Field(0.0, ge=0.0, le=1.0)

    @classmethod
    def empty(cls) -> "ClassificationResult":
        return cls(category="", tags=[], confidence=0.0)

    @classmethod
    def from_payload(cls, value: dict, confidence: float) -> "ClassificationResult":
        """Normalize a parsed {category, tags} object. A missing category yields the empty result."""
        category = value.get("category")
        tags = value.get("tags")
        if not isinstance(category, str) or not category.strip():
            return cls.empty()
        if not isinstance(tags, list):
            tags = []
        return cls(
            category=category.strip().lower(),
            tags=[tag.strip().lower() for tag in tags if isinstance(tag, str) and tag.strip()],
            confidence=confidence,
        )


class Mutation(BaseModel):
    title: str
    description: str
    differences: list[str] = Field(default_factory=list)


class MutationOptions(BaseModel):
    count: Optional[int] = Field(None, gt=0, le=20)
    focus: Optional[str] = None
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class ExpansionOptions(BaseModel):
    detail_level: str = Field("detailed", pattern="^(brief|detailed|comprehensive)$")
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class ExpansionStructure(BaseModel):
    overview: Optional[str] = None
    features: Optional[str] = None
    goals: Optional[str] = None
    challenges: Optional[str] = None
    next_steps: Optional[str] = None


class ExpansionResult(BaseModel):
    expanded_text: str
    original_text: str
    structure: ExpansionStructure = Field(default_factory=ExpansionStructure)


class ReorganizationOptions(BaseModel):
    preserve_sections: list[str] = Field(default_factory=list)
    target_structure: list[str] = Field(default_factory=list)
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class ReorganizationChanges(BaseModel):
    sections_added: list[str] = Field(default_factory=list)
    sections_removed: list[str] = Field(default_factory=list)
    sections_reorganized: list[str] = Field(default_factory=list)
    original_length: int = 0
    reorganized_length: int = 0


class ReorganizationResult(BaseModel):
    reorganized_text: str
    original_text: str
    changes: ReorganizationChanges = Field(default_factory=ReorganizationChanges)
