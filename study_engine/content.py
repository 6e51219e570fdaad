"""
Pydantic models for references handed over by the content collaborator.

The engine only ever sees identifiers; question text stays outside.
References may arrive as CardRef instances or as plain dicts (e.g. parsed
from a question-bank JSON file).
"""

from __future__ import annotations

from typing import Iterable, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from study_engine.exceptions import ValidationError
from study_engine.memory_model.constants import CardType, DEFAULT_SECTION_ID


class CardRef(BaseModel):
    """One reviewable item in a project's question bank."""
    model_config = ConfigDict(frozen=True)

    card_id: str = Field(..., min_length=1, description="Stable item identifier")
    section_id: str = Field(DEFAULT_SECTION_ID, min_length=1, description="Grouping the item belongs to")
    card_type: CardType = CardType.FLASHCARD


def parse_refs(items: Iterable[Union[CardRef, dict]]) -> list[CardRef]:
    """
    Validate content references.

    Raises:
        ValidationError: If any reference is malformed (missing id, unknown card type)
    """
    refs = []
    for item in items:
        if isinstance(item, CardRef):
            refs.append(item)
            continue
        try:
            refs.append(CardRef.model_validate(item))
        except SchemaError as exc:
            raise ValidationError(f"Invalid card reference {item!r}: {exc}") from exc
    return refs
