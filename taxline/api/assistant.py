"""Knowledge search and assistant endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from taxline.api.deps import get_assistant, get_knowledge
from taxline.knowledge.matcher import Assistant, ReplyKind, search_articles
from taxline.knowledge.models import Article, KnowledgeBase

router = APIRouter(prefix="/api", tags=["knowledge"])


class SearchResponse(BaseModel):
    query: str
    results: list[Article]


class AssistantRequest(BaseModel):
    question: str = Field(max_length=1000)


class AssistantResponse(BaseModel):
    name: str
    answer: str
    kind: ReplyKind
    topic: str | None = None


@router.get("/knowledge/search", response_model=SearchResponse)
async def search_knowledge(
    knowledge: Annotated[KnowledgeBase, Depends(get_knowledge)],
    q: str = Query(default=""),
) -> SearchResponse:
    """Search articles by title and content; short queries return nothing."""
    return SearchResponse(query=q, results=search_articles(knowledge.articles, q))


@router.post("/assistant", response_model=AssistantResponse)
async def ask_assistant(
    payload: AssistantRequest,
    assistant: Annotated[Assistant, Depends(get_assistant)],
) -> AssistantResponse:
    """Answer a tax question."""
    reply = assistant.answer(payload.question)
    return AssistantResponse(
        name=assistant.name, answer=reply.text, kind=reply.kind, topic=reply.topic
    )
