"""Annotator: summary, sentiment and keywords for one raw fragment.

Tries the optional AI summarizer first and falls back to
:mod:`news_scanner.analysis.local_annotator`.  :meth:`Annotator.annotate`
never raises: the worst case is an empty summary, ``neutral`` sentiment and
no keywords, so an annotation bug never costs the pipeline a fragment.
"""

from __future__ import annotations

import structlog

from news_scanner.analysis.ai_summarizer import AiAnnotation, AiSummarizer
from news_scanner.analysis.local_annotator import (
    classify_sentiment,
    extract_keywords,
    extractive_summary,
)
from news_scanner.config.settings import Settings
from news_scanner.core.exceptions import AnnotationDegradedError
from news_scanner.core.types import AnnotatedFragment, RawFragment

logger = structlog.get_logger(__name__)


class Annotator:
    """AI-then-local fragment annotation.

    Args:
        summarizer: Optional AI collaborator.  ``None`` means local only.
    """

    def __init__(self, summarizer: AiSummarizer | None = None) -> None:
        self._summarizer = summarizer

    @classmethod
    def from_settings(cls, settings: Settings) -> Annotator:
        summarizer = AiSummarizer.from_settings(settings)
        logger.info(
            "annotator configured",
            mode="ai" if summarizer is not None else "local",
        )
        return cls(summarizer)

    @property
    def uses_ai(self) -> bool:
        return self._summarizer is not None

    async def annotate(self, fragment: RawFragment) -> AnnotatedFragment:
        """Annotate ``fragment``; never raises."""
        if self._summarizer is not None:
            try:
                ai = await self._summarizer.summarize(fragment)
            except AnnotationDegradedError as exc:
                logger.warning("ai annotation degraded, using local", url=fragment.url, error=str(exc))
            except Exception:
                logger.exception("ai annotation failed unexpectedly, using local", url=fragment.url)
            else:
                return self._merge(fragment, ai)
        return self._local(fragment)

    def _merge(self, fragment: RawFragment, ai: AiAnnotation) -> AnnotatedFragment:
        try:
            return AnnotatedFragment(
                fragment=fragment,
                summary=ai.summary,
                sentiment=ai.sentiment or classify_sentiment(fragment.body),
                keywords=ai.keywords if ai.keywords is not None else extract_keywords(fragment.body),
            )
        except Exception:
            logger.exception("local fill-in failed", url=fragment.url)
            return AnnotatedFragment(fragment=fragment, summary=ai.summary, sentiment="neutral")

    def _local(self, fragment: RawFragment) -> AnnotatedFragment:
        try:
            return AnnotatedFragment(
                fragment=fragment,
                summary=extractive_summary(fragment.body),
                sentiment=classify_sentiment(fragment.body),
                keywords=extract_keywords(fragment.body),
            )
        except Exception:
            logger.exception("local annotation failed", url=fragment.url)
            return AnnotatedFragment(fragment=fragment, summary="", sentiment="neutral")
