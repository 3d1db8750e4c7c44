from importlib.metadata import PackageNotFoundError, version

from phrasematch.engine.locator import build_snippet, detect_wrapping, scan
from phrasematch.engine.mutator import apply, apply_document
from phrasematch.models import MutationRequest, Occurrence
from phrasematch.service import PhraseMatchService

try:
    __version__ = version("phrasematch")
except PackageNotFoundError:
    # Running from a source checkout that was never installed.
    __version__ = "0.0.0-dev"

__all__ = [
    "scan",
    "detect_wrapping",
    "build_snippet",
    "apply",
    "apply_document",
    "Occurrence",
    "MutationRequest",
    "PhraseMatchService",
    "__version__",
]
