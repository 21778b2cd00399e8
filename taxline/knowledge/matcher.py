"""Article search and the keyword assistant.

Nothing here touches the form graph: the assistant is a scored linear scan
over configured topics, followed by a few canned fallbacks.
"""

import re
from dataclasses import dataclass
from enum import Enum

from taxline.core.logging import get_logger
from taxline.knowledge.models import Article, AssistantConfig, AssistantTopic

logger = get_logger(__name__)

MIN_QUERY_LENGTH = 2
MIN_TOPIC_WORD_LENGTH = 3

GREETING_PATTERN = re.compile(r"^(hi|hello|hey|good morning|good afternoon)")
THANKS_PATTERN = re.compile(r"(thank|thanks)")
LINE_PATTERN = re.compile(r"line\s+(\d+[a-z]?)")


def search_articles(articles: list[Article], query: str) -> list[Article]:
    """Find articles whose title or content contains the query.

    Queries shorter than two characters (after trimming) match nothing.
    """
    query = query.strip()
    if len(query) < MIN_QUERY_LENGTH:
        return []
    return [article for article in articles if article.matches(query)]


class ReplyKind(str, Enum):
    """Which rule produced an assistant reply."""

    GREETING = "greeting"
    THANKS = "thanks"
    TOPIC = "topic"
    LINE_HINT = "line_hint"
    USAGE = "usage"
    SAVE = "save"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class AssistantReply:
    """An answer plus how it was chosen."""

    text: str
    kind: ReplyKind
    topic: str | None = None
    score: int = 0


class Assistant:
    """Keyword-matching tax assistant."""

    def __init__(self, config: AssistantConfig) -> None:
        self.config = config

    @property
    def name(self) -> str:
        return self.config.name

    def score(self, question: str, topic: AssistantTopic) -> int:
        """Score one topic against a lowercased, trimmed question.

        A question containing the whole topic phrase scores the exact-match
        score; otherwise every pair of overlapping words (one containing the
        other, topic words of three or more characters) adds the word score.
        Year and priority keyword bonuses apply on top of either.
        """
        cfg = self.config
        phrase = topic.topic
        if phrase in question:
            score = cfg.exact_match_score
        else:
            score = 0
            question_words = question.split()
            for topic_word in phrase.split():
                if len(topic_word) < MIN_TOPIC_WORD_LENGTH:
                    continue
                for question_word in question_words:
                    if topic_word in question_word or question_word in topic_word:
                        score += cfg.word_match_score
                        if topic_word == cfg.year_keyword:
                            score += cfg.year_word_bonus

        if cfg.year_keyword in question and cfg.year_keyword in phrase:
            score += cfg.year_topic_bonus

        for keyword in cfg.priority_keywords:
            if keyword in question and keyword in phrase:
                score += cfg.priority_bonus

        return score

    def best_topic(self, question: str) -> tuple[AssistantTopic | None, int]:
        """Highest scoring topic; ties keep the earlier topic."""
        best: AssistantTopic | None = None
        best_score = 0
        for topic in self.config.topics:
            score = self.score(question, topic)
            if score > best_score:
                best, best_score = topic, score
        return best, best_score

    def answer(self, question: str) -> AssistantReply:
        """Answer a free-text question."""
        replies = self.config.replies
        text = question.strip().lower()

        if GREETING_PATTERN.match(text):
            return AssistantReply(replies.greeting, ReplyKind.GREETING)
        if THANKS_PATTERN.search(text):
            return AssistantReply(replies.thanks, ReplyKind.THANKS)

        topic, score = self.best_topic(text)
        if topic is not None and score >= self.config.minimum_score:
            logger.debug("assistant_topic_matched", topic=topic.topic, score=score)
            return AssistantReply(topic.answer, ReplyKind.TOPIC, topic.topic, score)

        line = LINE_PATTERN.search(text)
        if line:
            return AssistantReply(
                replies.line_hint.format(line=line.group(1)), ReplyKind.LINE_HINT, score=score
            )
        if "how" in text and "use" in text:
            return AssistantReply(replies.usage, ReplyKind.USAGE, score=score)
        if "save" in text or "progress" in text:
            return AssistantReply(replies.save, ReplyKind.SAVE, score=score)

        logger.debug("assistant_no_match", best_score=score)
        return AssistantReply(replies.fallback, ReplyKind.FALLBACK, score=score)
