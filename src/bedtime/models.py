"""
Story data models.

Pydantic models for the persisted story record and for generation requests.
Python attributes are snake_case; the JSON wire format uses the camelCase
aliases the web client expects (``userId``, ``createdAt``, ...).
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

STORY_LENGTHS = ("short", "medium", "long")


class StoryRecord(BaseModel):
    """A saved story owned by one user."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    images: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    user_id: str = Field(..., alias="userId")
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with wire (camelCase) keys."""
        return self.model_dump(by_alias=True)


class GenerationRequest(BaseModel):
    """Validated input for one story generation."""
    model_config = ConfigDict(populate_by_name=True)

    age: str
    characters: str
    setting: str
    moral: str
    length: str = Field("medium", pattern="^(short|medium|long)$")
    tone: Optional[str] = None
    continuation: bool = False
    previous_story: Optional[str] = Field(None, alias="previousStory")
    prompt: Optional[str] = None
    illustrate: bool = False

    def story_metadata(self) -> Dict[str, str]:
        metadata = {
            "age": self.age,
            "characters": self.characters,
            "setting": self.setting,
            "moral": self.moral,
            "length": self.length,
        }
        if self.tone:
            metadata["tone"] = self.tone
        return metadata
