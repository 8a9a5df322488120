"""Centralized configuration for the pdfstruct extraction engine."""

from __future__ import annotations

import re

# Text normalization
WHITESPACE_RE = re.compile(r"\s+")
ITEM_JOINER = " "
PAGE_SEPARATOR = "\n\n"
DEFAULT_RENDER_SCALE = 1.0

# Region resolution
SAME_LINE_TOLERANCE = 2.0

# Figure extraction
MIN_FIGURE_DIMENSION = 50
MIN_FIGURE_ASPECT_RATIO = 0.05
MAX_FIGURE_ASPECT_RATIO = 20.0
TRANSFORM_LOOKBACK_OPERATORS = 20
FIGURE_EXTRACTION_METHOD = "pdf-operator-list"
FIGURE_ID_PREFIX = "fig"

# Semantic chunking
DEFAULT_MAX_CHUNK_SIZE = 3000
DEFAULT_OVERLAP_SIZE = 200
DEFAULT_MIN_SENTENCE_LENGTH = 10
SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")
SEMANTIC_CHUNK_ID_PREFIX = "semantic-chunk"

# Page chunking
DEFAULT_PAGE_CHUNK_SIZE = 3000
DEFAULT_PAGE_CHUNK_OVERLAP = 300
PAGE_CHUNKS_FORMAT_VERSION = "2.0"

# Search
SEARCH_CONTEXT_CHARS = 50

# Session cache
DEFAULT_SESSION_CACHE_MAX_ENTRIES = 8
DEFAULT_SESSION_CACHE_TTL_SECONDS = 60 * 60

# Backend
MAX_FORM_XOBJECT_DEPTH = 8
DOWNLOAD_TIMEOUT_SECONDS = 30.0
