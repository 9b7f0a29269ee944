"""Review request data models."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import ValidationError

NonEmptyStr = Annotated[str, Field(min_length=1)]


class ReviewStyle(str, Enum):
    STRUCTURED = "structured"
    FREEFORM = "freeform"


class ReviewType(str, Enum):
    GENERAL = "general"
    CODE = "code"
    DESIGN = "design"
    ARCHITECTURE = "architecture"
    SECURITY_AUDIT = "security_audit"
    BRAINSTORM_ALTERNATIVES = "brainstorm_alternatives"


class ReviewRequest(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True, validate_default=True)

    content: str = Field(min_length=1, description="Text the peer reviewer should analyze")
    focus: Optional[list[NonEmptyStr]] = None
    style: ReviewStyle = ReviewStyle.STRUCTURED
    time_budget_seconds: Optional[int] = Field(default=None, ge=30, le=600, strict=True)
    review_type: ReviewType = ReviewType.GENERAL
    target_agent: Optional[NonEmptyStr] = None
    target_model: Optional[str] = None
    resource_paths: list[NonEmptyStr] = []

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "ReviewRequest":
        """Validate raw tool arguments, raising the interpeer ValidationError."""
        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
                for err in e.errors()
            )
            raise ValidationError(
                f"Invalid review request: {problems}", agent=data.get("target_agent")
            ) from e
