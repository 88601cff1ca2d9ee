"""Logger tests"""

import logging

from txt2epub.utils.logger import get_logger, setup_logging, verbosity_to_level


def test_verbosity_to_level():
    assert verbosity_to_level(0) == "ERROR"
    assert verbosity_to_level(1) == "WARNING"
    assert verbosity_to_level(2) == "INFO"
    assert verbosity_to_level(3) == "DEBUG"
    # out of range values clamp
    assert verbosity_to_level(-1) == "ERROR"
    assert verbosity_to_level(9) == "DEBUG"


def test_log_file(tmp_path):
    log_file = tmp_path / "logs" / "txt2epub.log"
    setup_logging(level="DEBUG", console_level="ERROR", log_file=str(log_file))
    try:
        logger = get_logger("txt2epub.test")
        logger.debug("debug message (file only)")
        logger.error("error message")
        for handler in logging.getLogger().handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "debug message (file only)" in text
        assert "ERROR" in text
        assert "txt2epub.test" in text
    finally:
        setup_logging()


def test_repeated_setup_replaces_handlers():
    setup_logging()
    setup_logging()
    assert len(logging.getLogger().handlers) == 1


if __name__ == "__main__":
    test_verbosity_to_level()
    print("\n✅ Logger tests passed!")
