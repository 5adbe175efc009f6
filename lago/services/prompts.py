"""
Rewrite prompt template providers.

The template carries two placeholders: {length} (target word count) and
{input} (the original comment). Providers expose a single get() so the
rewrite generator never knows where the template came from or how long it
is cached.
"""
import logging
import re
import time
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = (
    "Rewrite this comment to be kinder and more inclusive while maintaining the same meaning, \n"
    "same commenter tone, and similar length (around {length} words). \n"
    'Focus only on changing the offensive part of the comment, not the entire comment: "{input}"'
)

_FENCED_BLOCK_RE = re.compile(r"```[^\n]*\n(.*?)\n```", re.DOTALL)


def extract_template(markdown: str) -> str | None:
    """Returns the first fenced code block of a markdown document, stripped."""
    match = _FENCED_BLOCK_RE.search(markdown)
    if not match:
        return None
    template = match.group(1).strip()
    return template or None


class StaticPromptTemplateProvider:
    """Always returns the same template. Used in tests and as an override."""

    def __init__(self, template: str = DEFAULT_TEMPLATE, source: str = "builtin"):
        self.template = template
        self.source = source

    def get(self) -> str:
        return self.template


class FilePromptTemplateProvider:
    """
    Loads the template from a markdown file and keeps it for ttl_seconds.

    The first fenced code block in the file is the template. A missing file or
    a file without a fenced block falls back to DEFAULT_TEMPLATE (the fallback
    is cached for the same TTL, so a fixed file is picked up on the next
    refresh). Refresh happens lazily on the first get() after expiry; there is
    no lock, concurrent callers may both reload and a stale read is fine.
    """

    def __init__(self, path: str | Path, ttl_seconds: float = 300.0, clock=time.monotonic):
        self.path = Path(path)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._template: str | None = None
        self._loaded_at = 0.0
        self.source = str(self.path)

    def get(self) -> str:
        now = self._clock()
        if self._template is None or now - self._loaded_at >= self.ttl_seconds:
            self._template = self._load()
            self._loaded_at = now
        return self._template

    def invalidate(self):
        self._template = None

    def _load(self) -> str:
        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read prompt file {self.path} ({e}). Using default template.")
            return DEFAULT_TEMPLATE

        template = extract_template(content)
        if template is None:
            logger.warning(f"No fenced prompt block in {self.path}. Using default template.")
            return DEFAULT_TEMPLATE

        logger.info(f"Loaded rewrite prompt from {self.path} ({len(template)} chars)")
        return template
