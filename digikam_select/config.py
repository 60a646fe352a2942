"""Configuration management for digikam-select."""

import enum
import logging
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

import yaml

from .converter import check_converter, locate_converter
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_SECTION = 'digikam_select'


class TransferMode(enum.Enum):
    COPY = 'copy'
    SYMLINK = 'symlink'
    HARDLINK = 'hardlink'
    CONVERT = 'convert'

    @classmethod
    def parse(cls, value: str) -> 'TransferMode':
        """Parse a mode name; 'link' is an alias of 'hardlink'."""
        name = str(value or '').strip().lower()
        if name == 'link':
            return cls.HARDLINK
        return cls(name)


MODE_NAMES = ['copy', 'link', 'hardlink', 'symlink', 'convert']


class Verbosity(enum.IntEnum):
    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3

    @property
    def log_level(self) -> int:
        if self is Verbosity.QUIET:
            return logging.ERROR
        if self is Verbosity.NORMAL:
            return logging.INFO
        return logging.DEBUG


class Config:
    """Optional YAML file holding defaults for command-line options."""

    def __init__(self, config_path: Optional[str] = None, search: bool = True):
        """
        Initialize configuration.

        Args:
            config_path: Path to config file. If None, searches standard
                locations and falls back to an empty configuration.
            search: Whether to look in the standard locations at all
        """
        self.config_path = config_path or (self._find_config_file() if search else None)
        self.config: Dict[str, Any] = {}
        if self.config_path:
            self._load_config()

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in standard locations."""
        possible_paths = [
            Path.cwd() / "digikam-select.yml",
            Path.home() / ".config" / "digikam-select" / "config.yml",
        ]

        for config_file in possible_paths:
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return str(config_file.resolve())

        return None

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            with open(self.config_path, 'r') as f:
                self.config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError([f"Failed to load config from {self.config_path}: {e}"])

        if not isinstance(self.config, dict):
            raise ConfigurationError([f"Config file {self.config_path} must contain a mapping"])
        logger.info(f"Loaded configuration from {self.config_path}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path like 'digikam_select.selection.tags'
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def option(self, key: str, default: Any = None) -> Any:
        """Get a value from the digikam_select section."""
        return self.get(f'{CONFIG_SECTION}.{key}', default)

    def get_log_file(self) -> Optional[str]:
        return self.get('logging.file')

    def get_verbosity(self) -> Optional[str]:
        return self.get('logging.level')

    def __str__(self) -> str:
        return f"Config(path={self.config_path})"


@dataclass(frozen=True)
class Options:
    """Resolved, validated options for one run."""
    input_db: Path
    output_dir: Path
    mode: TransferMode = TransferMode.COPY
    tags: FrozenSet[str] = field(default_factory=frozenset)
    min_rating: int = 0
    album: Optional[str] = None
    albums: bool = True
    force: bool = False
    sync: bool = False
    dry_run: bool = False
    interactive: bool = False
    convert_args: Tuple[str, ...] = ()
    convert_bin: Optional[str] = None
    verbosity: Verbosity = Verbosity.NORMAL

    @property
    def log_level(self) -> int:
        return self.verbosity.log_level


def parse_tags(value: Union[None, str, Iterable[str]]) -> FrozenSet[str]:
    """Split a comma separated tag string (or list) into a set of names."""
    if not value:
        return frozenset()
    if isinstance(value, str):
        value = value.split(',')
    return frozenset(tag.strip() for tag in value if tag and tag.strip())


def resolve_verbosity(verbose: int = 0, quiet: bool = False,
                      configured: Optional[str] = None) -> Verbosity:
    if quiet:
        return Verbosity.QUIET
    if verbose:
        return Verbosity(min(Verbosity.NORMAL + verbose, Verbosity.DEBUG))
    if configured:
        try:
            return Verbosity[configured.upper()]
        except KeyError:
            logger.warning(f"Unknown verbosity '{configured}', using normal")
    return Verbosity.NORMAL


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def build_options(
    cli: Dict[str, Any],
    config: Optional[Config] = None,
    converter_check: Callable[[str], List[str]] = check_converter,
) -> Options:
    """
    Merge command-line values over config-file defaults and validate them.

    Args:
        cli: Command-line values; None means "not given"
        config: YAML defaults (may be empty)
        converter_check: Validates the conversion binary, returns error messages

    Returns:
        Options ready for selection and materialization

    Raises:
        ConfigurationError: With every validation message collected
    """
    if config is None:
        config = Config(search=False)

    errors: List[str] = []

    # Source and target
    input_value = _first(cli.get('input'), config.option('input'))
    input_db = None
    if not input_value:
        errors.append("No input database given (--input)")
    else:
        input_db = Path(os.path.expanduser(str(input_value))).absolute()
        if not (input_db.is_file() and os.access(input_db, os.R_OK)):
            errors.append(f"Input file '{input_db}' is not accessible")

    output_value = _first(cli.get('output'), config.option('output'))
    output_dir = None
    if not output_value:
        errors.append("No output directory given (--output)")
    else:
        output_dir = Path(os.path.expanduser(str(output_value))).absolute()
        if not (output_dir.is_dir() and os.access(output_dir, os.W_OK)):
            errors.append(f"Output directory {output_dir} is not writable")

    # Transfer mode
    compress = _first(cli.get('compress'), config.option('compress'))
    mode_value = _first(cli.get('mode'), config.option('mode'), 'copy')
    mode = TransferMode.COPY
    try:
        mode = TransferMode.parse(mode_value)
    except ValueError:
        errors.append(f"Incorrect transfer mode '{mode_value}' ({', '.join(MODE_NAMES)})")
    if compress is not None:
        if mode is not TransferMode.CONVERT and cli.get('mode'):
            logger.warning(f"--compress given, switching mode from {mode.value} to convert")
        mode = TransferMode.CONVERT

    convert_bin = None
    convert_args: Tuple[str, ...] = ()
    if mode is TransferMode.CONVERT:
        try:
            convert_args = tuple(shlex.split(str(compress or "")))
        except ValueError as e:
            errors.append(f"Cannot parse conversion options '{compress}': {e}")

        binary = _first(cli.get('convert_bin'), config.option('convert_bin'), 'convert')
        converter_errors = converter_check(binary)
        errors.extend(converter_errors)
        if not converter_errors:
            convert_bin = locate_converter(binary) or binary

    # Selection
    tags = parse_tags(_first(cli.get('tags'), config.option('selection.tags')))

    rating_value = _first(cli.get('minrating'), config.option('selection.minrating'), 0)
    min_rating = 0
    try:
        min_rating = int(rating_value)
        if not 0 <= min_rating <= 5:
            errors.append(f"Minimum rating must be between 0 and 5, got {min_rating}")
    except (TypeError, ValueError):
        errors.append(f"Minimum rating must be an integer, got '{rating_value}'")

    album = _first(cli.get('album'), config.option('selection.album')) or None

    if errors:
        raise ConfigurationError(errors)

    return Options(
        input_db=input_db,
        output_dir=output_dir,
        mode=mode,
        tags=tags,
        min_rating=min_rating,
        album=album,
        albums=not cli.get('no_albums') and bool(config.option('albums', True)),
        force=bool(cli.get('force') or config.option('force', False)),
        sync=bool(cli.get('sync') or config.option('sync', False)),
        dry_run=bool(cli.get('dry_run') or config.option('dry_run', False)),
        interactive=bool(cli.get('interactive') or config.option('interactive', False)),
        convert_args=convert_args,
        convert_bin=convert_bin,
        verbosity=resolve_verbosity(
            cli.get('verbose') or 0, bool(cli.get('quiet')), config.get_verbosity()
        ),
    )
