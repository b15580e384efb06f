"""Markdown content handling: metadata extraction, legacy import, file sections."""

from sitecms.content.bootstrap import bootstrap_if_empty
from sitecms.content.meta import extract_meta, generate_slug
from sitecms.content.sections import SectionFileHandler, section_handler

__all__ = [
    "SectionFileHandler",
    "bootstrap_if_empty",
    "extract_meta",
    "generate_slug",
    "section_handler",
]
