"""Batch conversion tests"""

import threading

import pytest

from txt2epub.config.loader import ConversionOptions
from txt2epub.stages.batch import BatchConverter, ConversionCancelled
from txt2epub.stages.chapter import make_chapter_list
from txt2epub.stages.rules import build_rule_set


def _write_chapters(tmp_path, count):
    paths = []
    for i in range(count):
        path = tmp_path / f"ch{i:02d}.txt"
        path.write_text(f"Chapter {i} & more\n", encoding="utf-8")
        paths.append(str(path))
    return paths


def test_fragments_in_chapter_order(tmp_path):
    chapters = make_chapter_list(_write_chapters(tmp_path, 12))
    converter = BatchConverter(build_rule_set(ConversionOptions()), max_workers=4)

    result = converter.run(chapters)

    assert [f.index for f in result.fragments] == list(range(12))
    for i, fragment in enumerate(result.fragments):
        assert fragment.ok
        assert fragment.title == f"ch{i:02d}"
        assert f"Chapter {i} &amp; more" in fragment.xhtml
    assert result.summary() == {"total": 12, "success": 12, "failed": 0}


def test_unreadable_file_becomes_error_notice(tmp_path):
    paths = _write_chapters(tmp_path, 2)
    missing = str(tmp_path / "gone.txt")
    chapters = make_chapter_list([paths[0], missing, paths[1]])
    converter = BatchConverter(build_rule_set(ConversionOptions()))

    result = converter.run(chapters)

    assert len(result.fragments) == 3
    assert [f.ok for f in result.fragments] == [True, False, True]
    assert f"Can't read file {missing}" in result.fragments[1].xhtml
    assert result.summary()["failed"] == 1


def test_progress_callback_order(tmp_path):
    chapters = make_chapter_list(_write_chapters(tmp_path, 5))
    seen = []

    BatchConverter(build_rule_set(ConversionOptions()), max_workers=3).run(
        chapters, on_progress=lambda f: seen.append(f.index)
    )

    assert seen == [0, 1, 2, 3, 4]


def test_cancel_before_start(tmp_path):
    chapters = make_chapter_list(_write_chapters(tmp_path, 3))
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(ConversionCancelled):
        BatchConverter(build_rule_set(ConversionOptions())).run(chapters, cancel_event=cancel)


def test_cancel_during_run(tmp_path):
    chapters = make_chapter_list(_write_chapters(tmp_path, 6))
    cancel = threading.Event()

    def _stop_after_first(fragment):
        cancel.set()

    with pytest.raises(ConversionCancelled):
        BatchConverter(build_rule_set(ConversionOptions()), max_workers=1).run(
            chapters, cancel_event=cancel, on_progress=_stop_after_first
        )
