"""Batch conversion

Transforms every chapter on a bounded thread pool and gathers the fragments
in chapter order. Nothing is written here; the packager commits the book
only once every fragment is ready.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence
from txt2epub.stages.assembler import (
    Fragment, MARKUP_EXTENSIONS, read_error_xhtml, text_file_to_xhtml
)
from txt2epub.stages.chapter import Chapter
from txt2epub.stages.rules import RuleSet
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)


class ConversionCancelled(RuntimeError):
    """The run was cancelled before every chapter was converted"""


@dataclass
class BatchResult:
    """Fragments in chapter order plus the chapters that degraded"""
    fragments: List[Fragment] = field(default_factory=list)

    @property
    def failed(self) -> List[Fragment]:
        return [f for f in self.fragments if not f.ok]

    def summary(self) -> Dict[str, int]:
        return {
            "total": len(self.fragments),
            "success": len(self.fragments) - len(self.failed),
            "failed": len(self.failed)
        }


class BatchConverter:
    """Chapter list -> XHTML fragments"""

    def __init__(
        self,
        rules: RuleSet,
        max_workers: int = 4,
        markup_extensions: Sequence[str] = MARKUP_EXTENSIONS,
        default_encoding: str = "utf-8",
        auto_detect_encoding: bool = True
    ):
        """
        Args:
            rules: RuleSet shared read-only by every worker
            max_workers: thread pool size
            markup_extensions: source extensions copied through unmodified
            default_encoding: fallback input encoding
            auto_detect_encoding: allow chardet detection
        """
        self.rules = rules
        self.max_workers = max(1, max_workers)
        self.markup_extensions = tuple(markup_extensions)
        self.default_encoding = default_encoding
        self.auto_detect_encoding = auto_detect_encoding

    def convert_chapter(self, chapter: Chapter) -> Fragment:
        """Transform one chapter; an unreadable source yields an error notice"""
        try:
            xhtml = text_file_to_xhtml(
                chapter.source,
                chapter.title,
                self.rules,
                markup_extensions=self.markup_extensions,
                default_encoding=self.default_encoding,
                auto_detect=self.auto_detect_encoding
            )
        except OSError as e:
            logger.error(f"Can't read file: {chapter.source} ({e})")
            return Fragment(chapter.index, chapter.title, read_error_xhtml(chapter.source, chapter.title), ok=False)

        return Fragment(chapter.index, chapter.title, xhtml)

    def run(
        self,
        chapters: Sequence[Chapter],
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[Callable[[Fragment], None]] = None
    ) -> BatchResult:
        """Convert every chapter

        Args:
            chapters: chapter list
            cancel_event: when set, chapters not started yet are skipped and
                ConversionCancelled is raised
            on_progress: called with each fragment, in chapter order

        Returns:
            BatchResult with one fragment per chapter, in chapter order

        Raises:
            ConversionCancelled: `cancel_event` was set during the run
        """
        logger.info(f"Converting {len(chapters)} chapters ({self.max_workers} workers)")

        def _worker(chapter: Chapter) -> Optional[Fragment]:
            if cancel_event and cancel_event.is_set():
                return None
            return self.convert_chapter(chapter)

        fragments: List[Optional[Fragment]] = [None] * len(chapters)

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="txt2epub") as executor:
            futures = [executor.submit(_worker, chapter) for chapter in chapters]
            try:
                for order, future in enumerate(futures):
                    if cancel_event and cancel_event.is_set():
                        break
                    fragment = future.result()
                    if fragment is None:
                        continue
                    fragments[order] = fragment
                    if on_progress:
                        on_progress(fragment)
            except KeyboardInterrupt:
                if cancel_event:
                    cancel_event.set()
                for f in futures:
                    f.cancel()
                raise
            if cancel_event and cancel_event.is_set():
                for f in futures:
                    if not f.done():
                        f.cancel()

        if (cancel_event and cancel_event.is_set()) or any(f is None for f in fragments):
            logger.warning("⚠️  Conversion cancelled, nothing written")
            raise ConversionCancelled(f"Cancelled after {sum(f is not None for f in fragments)}/{len(chapters)} chapters")

        result = BatchResult(fragments=list(fragments))
        summary = result.summary()
        logger.info(f"✅ Conversion complete: {summary['success']} success, {summary['failed']} failed")
        return result
