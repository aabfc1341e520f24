"""Fragment annotation: extractive summary, sentiment and keywords."""

from news_scanner.analysis.annotator import Annotator

__all__ = ["Annotator"]
