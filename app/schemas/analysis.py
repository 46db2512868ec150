from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal

Priority = Literal["high", "medium", "low"]


class CamelModel(BaseModel):
    """Immutable model that reads and writes camelCase field names"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )


class MissingSkill(CamelModel):
    skill: str = Field(min_length=1)
    priority: Priority
    explanation: str = Field(min_length=1)
    recommendation: str = Field(min_length=1)
    suggested_text: Optional[str] = None


class FeedbackItem(CamelModel):
    """One experience-reframing suggestion or strength"""
    title: str = Field(min_length=1)
    explanation: str = Field(min_length=1)
    recommendation: str = Field(min_length=1)
    suggested_text: Optional[str] = None


class SuggestedSection(CamelModel):
    """Ready-to-paste resume section"""
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)


class AnalysisResult(CamelModel):
    match_percentage: int = Field(ge=0, le=100)
    missing_skills: List[MissingSkill] = []
    experience_reframing: List[FeedbackItem] = []
    strengths: List[FeedbackItem] = []
    suggested_sections: Optional[List[SuggestedSection]] = None
