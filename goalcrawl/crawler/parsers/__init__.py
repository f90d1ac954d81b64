"""Parser package exports."""

from .html_parser import ContentExtractor, ContentExtractorConfig, ExtractionResult, clean_html
from .link_parser import LinkPrioritizer, RawLink

__all__ = [
    "ContentExtractor",
    "ContentExtractorConfig",
    "ExtractionResult",
    "LinkPrioritizer",
    "RawLink",
    "clean_html",
]
