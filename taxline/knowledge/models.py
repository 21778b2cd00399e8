"""Pydantic models for the knowledge corpus and assistant configuration.

Both are YAML documents bundled under knowledge/data:
- articles.yaml: reference articles searched by title and content
- assistant.yaml: assistant topics, scoring weights and canned replies
"""

from pydantic import BaseModel, Field, field_validator


class Article(BaseModel):
    """A reference article."""

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title or content."""
        needle = query.lower()
        return needle in self.title.lower() or needle in self.content.lower()


class AssistantTopic(BaseModel):
    """A keyword topic and the answer given when it matches best."""

    topic: str = Field(..., min_length=1, description="Keyword phrase to match")
    answer: str = Field(..., min_length=1)

    @field_validator("topic")
    @classmethod
    def normalize_topic(cls, v: str) -> str:
        """Topics are matched against lowercased questions."""
        return v.strip().lower()


class AssistantReplies(BaseModel):
    """Canned replies used when no topic scores high enough."""

    greeting: str
    thanks: str
    line_hint: str = Field(..., description="Template with a {line} placeholder")
    usage: str
    save: str
    fallback: str

    @field_validator("line_hint")
    @classmethod
    def validate_line_hint(cls, v: str) -> str:
        if "{line}" not in v:
            raise ValueError("line_hint must contain a {line} placeholder")
        return v


class AssistantConfig(BaseModel):
    """Assistant persona, scoring weights, replies and topics."""

    name: str = "Emily"
    minimum_score: int = Field(20, ge=0)
    exact_match_score: int = Field(100, ge=0)
    word_match_score: int = Field(10, ge=0)
    year_keyword: str = "2025"
    year_word_bonus: int = Field(5, ge=0)
    year_topic_bonus: int = Field(40, ge=0)
    priority_keywords: list[str] = Field(default_factory=list)
    priority_bonus: int = Field(30, ge=0)
    replies: AssistantReplies
    topics: list[AssistantTopic] = Field(..., min_length=1)


class KnowledgeBase(BaseModel):
    """The complete knowledge corpus."""

    articles: list[Article] = Field(default_factory=list)
    assistant: AssistantConfig
