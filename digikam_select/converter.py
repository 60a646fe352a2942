"""Image conversion through an external ImageMagick ``convert`` binary."""

import logging
import re
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

SUPPORTED_VERSION = re.compile(r'ImageMagick\s+([67])\.')
PROBE_TIMEOUT = 10


@dataclass
class ConversionResult:
    """Outcome of one conversion call."""
    returncode: int
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ImageConverter:
    """Interface for anything able to convert one image into another."""

    def convert(self, source: Path, args: Sequence[str], target: Path) -> ConversionResult:
        raise NotImplementedError


class ImageMagickConverter(ImageConverter):
    """Runs ``convert <source> <args...> <target>`` without a shell."""

    def __init__(self, binary: str):
        self.binary = binary

    def build_command(self, source: Path, args: Sequence[str], target: Path) -> List[str]:
        return [self.binary, str(source), *args, str(target)]

    def convert(self, source: Path, args: Sequence[str], target: Path) -> ConversionResult:
        command = self.build_command(source, args, target)
        logger.debug(f"Running: {' '.join(shlex.quote(c) for c in command)}")
        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except OSError as e:
            return ConversionResult(returncode=-1, stderr=str(e))
        return ConversionResult(returncode=result.returncode, stderr=result.stderr.strip())


def locate_converter(binary: str = "convert") -> Optional[str]:
    """Resolve the conversion binary to an absolute path, or None."""
    return shutil.which(binary)


def probe_version(binary: str) -> Optional[str]:
    """
    Ask the binary for its version banner.

    Args:
        binary: Absolute path of the conversion executable

    Returns:
        The ImageMagick major version ("6" or "7"), or None when the binary
        is not a supported ImageMagick.
    """
    try:
        result = subprocess.run(
            [binary, '-version'],
            capture_output=True, text=True, timeout=PROBE_TIMEOUT
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Could not probe {binary}: {e}")
        return None

    match = SUPPORTED_VERSION.search(result.stdout or "")
    return match.group(1) if match else None


def check_converter(binary: str) -> List[str]:
    """
    Validate a conversion binary.

    Returns:
        List of validation error messages (empty when usable)
    """
    resolved = locate_converter(binary)
    if not resolved:
        return [f"Conversion binary '{binary}' not found. "
                "Install ImageMagick binaries and retry."]

    version = probe_version(resolved)
    if version is None:
        return [f"Conversion binary {resolved} is not ImageMagick 6 or 7"]

    logger.debug(f"Using ImageMagick {version} at {resolved}")
    return []
