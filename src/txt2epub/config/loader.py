"""Configuration loader (YAML)

Reads config.yml into dataclasses. Command line flags are applied on top of
the loaded values by the CLI.
"""

import codecs
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field, fields, asdict, replace
from txt2epub.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yml"


class ConfigurationError(ValueError):
    """Invalid configuration; raised before any file is processed"""


@dataclass(frozen=True)
class ConversionOptions:
    """Per-line conversion options

    Attributes:
        markdown: interpret the light Markdown subset (bold, italic, h1-h3, <br/>)
        indent_as_paragraph: a line starting with 3+ whitespace starts a paragraph
        strip_pagenumbers: drop indented bare page numbers
        first_line_is_title: first line of each file becomes its <h1> heading
        one_paragraph_per_line: close the paragraph after every input line
        paragraph_indent_styling: indented paragraphs instead of blank-line spacing
        verbatim_delimiter: marker around text that must not be escaped (None = off)
        blank_line_as_paragraph: an empty line starts a new paragraph
        encoding: force the input encoding instead of detecting it
    """
    markdown: bool = True
    indent_as_paragraph: bool = True
    strip_pagenumbers: bool = False
    first_line_is_title: bool = False
    one_paragraph_per_line: bool = False
    paragraph_indent_styling: bool = False
    verbatim_delimiter: Optional[str] = None
    blank_line_as_paragraph: bool = True
    encoding: Optional[str] = None


@dataclass
class BookConfig:
    """Book metadata"""
    title: Optional[str] = None
    author: str = "unknown"
    language: str = "en"
    cover_image: Optional[str] = None


@dataclass
class ProcessingConfig:
    """Processing options"""
    max_workers: int = 4
    default_encoding: str = "utf-8"
    auto_detect_encoding: bool = True


@dataclass
class EPUBConfig:
    """EPUB packaging options"""
    cover_size: Dict[str, int] = field(default_factory=lambda: {"width": 600, "height": 900})
    markup_extensions: List[str] = field(default_factory=lambda: [".html", ".htm", ".xhtml"])


@dataclass
class LoggingConfig:
    """Logging options"""
    file_level: str = "DEBUG"
    console_level: str = "ERROR"
    log_file: Optional[str] = None


@dataclass
class Config:
    """Full configuration"""
    conversion: ConversionOptions = field(default_factory=ConversionOptions)
    book: BookConfig = field(default_factory=BookConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    epub: EPUBConfig = field(default_factory=EPUBConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _build_section(cls, data: Optional[Dict[str, Any]], section: str):
    """Instantiate one config dataclass, rejecting unknown keys"""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigurationError(f"Section '{section}' must be a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown key(s) in section '{section}': {', '.join(unknown)}")
    return cls(**data)


def check_encoding(name: str, setting: str) -> None:
    """Raise ConfigurationError unless `name` is a codec Python knows

    Args:
        name: encoding name from the configuration or command line
        setting: dotted setting name for the error message
    """
    try:
        codecs.lookup(name)
    except LookupError as e:
        raise ConfigurationError(f"{setting}: unknown encoding {name!r}") from e


def config_from_dict(data: Optional[Dict[str, Any]]) -> Config:
    """Build a Config from already parsed YAML data

    Args:
        data: parsed mapping (None for an empty file)

    Returns:
        Config object

    Raises:
        ConfigurationError: unknown section or key, or bad values
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    sections = {f.name for f in fields(Config)}
    unknown = sorted(set(data) - sections)
    if unknown:
        raise ConfigurationError(f"Unknown config section(s): {', '.join(unknown)}")

    config = Config(
        conversion=_build_section(ConversionOptions, data.get("conversion"), "conversion"),
        book=_build_section(BookConfig, data.get("book"), "book"),
        processing=_build_section(ProcessingConfig, data.get("processing"), "processing"),
        epub=_build_section(EPUBConfig, data.get("epub"), "epub"),
        logging=_build_section(LoggingConfig, data.get("logging"), "logging")
    )

    if config.processing.max_workers < 1:
        raise ConfigurationError(f"processing.max_workers must be >= 1, got {config.processing.max_workers}")
    check_encoding(config.processing.default_encoding, "processing.default_encoding")
    if config.conversion.encoding is not None:
        check_encoding(config.conversion.encoding, "conversion.encoding")
    return config


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """Load config.yml

    Args:
        config_path: configuration file path

    Returns:
        Config object

    Raises:
        FileNotFoundError: the file does not exist
        ConfigurationError: YAML syntax error or invalid content
    """
    path = Path(config_path)
    if not path.exists():
        logger.error(f"Config file not found: {config_path}")
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.debug(f"Loading config from: {config_path}")
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    config = config_from_dict(data)
    logger.info(f"✅ Config loaded: {config_path}")
    return config


# global instance (singleton)
_config: Optional[Config] = None


def get_config() -> Config:
    """Return the global configuration (singleton)

    Falls back to the built-in defaults when config/config.yml is absent.

    Example:
        >>> from txt2epub.config.loader import get_config
        >>> config = get_config()
        >>> print(config.processing.max_workers)
    """
    global _config
    if _config is None:
        if Path(DEFAULT_CONFIG_PATH).exists():
            _config = load_config()
        else:
            logger.debug("No config file, using defaults")
            _config = Config()
    return _config


def with_overrides(options: ConversionOptions, **overrides: Any) -> ConversionOptions:
    """Return a copy of `options` with every non-None override applied"""
    changes = {key: value for key, value in overrides.items() if value is not None}
    return replace(options, **changes)


def save_config(config: Config, config_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write config.yml

    Args:
        config: Config object
        config_path: configuration file path
    """
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "conversion": asdict(config.conversion),
        "book": asdict(config.book),
        "processing": asdict(config.processing),
        "epub": asdict(config.epub),
        "logging": asdict(config.logging)
    }

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, allow_unicode=True, default_flow_style=False, sort_keys=False)

    logger.info(f"✅ Config saved: {config_path}")
