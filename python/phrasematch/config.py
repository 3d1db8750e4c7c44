import os
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class BlockMarkerSyntax(BaseModel):
    """
    Describes one family of block-level comment markers.
    A block opens with `<!-- {start_prefix}name ... -->` and closes with
    `<!-- {end_prefix}name -->`.
    """

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Short name used in logs.")
    start_prefix: str = Field(..., description="Text that follows '<!--' in an opening marker, e.g. 'wp:'.")
    end_prefix: str = Field(..., description="Text that follows '<!--' in a closing marker, e.g. '/wp:'.")


DEFAULT_BLOCK_MARKERS = (
    BlockMarkerSyntax(label="gutenberg", start_prefix="wp:", end_prefix="/wp:"),
    BlockMarkerSyntax(label="generic", start_prefix="start:", end_prefix="end:"),
)


class MatchSettings(BaseModel):
    """Tunable knobs for scanning, snippet rendering and the document ID cache."""

    model_config = ConfigDict(frozen=True)

    context_chars: int = Field(default=80, ge=0, description="Characters of context on each side of a snippet.")
    ellipsis: str = Field(default="…", description="Marker for a truncated snippet edge.")
    highlight_open: str = Field(default="<mark>", description="Inserted before the highlighted phrase.")
    highlight_close: str = Field(default="</mark>", description="Inserted after the highlighted phrase.")
    block_markers: List[BlockMarkerSyntax] = Field(default_factory=lambda: list(DEFAULT_BLOCK_MARKERS))
    cache_ttl: int = Field(default=3600, ge=0, description="Seconds a cached document ID lookup stays valid.")

    @classmethod
    def from_env(cls, **overrides) -> "MatchSettings":
        """Builds settings from PHRASEMATCH_* environment variables, then applies overrides."""
        values = {}
        if os.environ.get("PHRASEMATCH_CONTEXT_CHARS"):
            values["context_chars"] = int(os.environ["PHRASEMATCH_CONTEXT_CHARS"])
        if os.environ.get("PHRASEMATCH_CACHE_TTL"):
            values["cache_ttl"] = int(os.environ["PHRASEMATCH_CACHE_TTL"])
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


DEFAULT_SETTINGS = MatchSettings()
