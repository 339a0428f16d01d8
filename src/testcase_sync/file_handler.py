"""File handler module: path validation, encoding-aware read/write, input format detection.

Provides the file I/O used by the command-line tool.  The core codecs
never touch the filesystem; everything that does lives here.
"""

from pathlib import Path

from charset_normalizer import from_bytes

# =============================================================================
# Path Validation
# =============================================================================


def validate_file_path(path_str: str) -> Path:
    """Validate and resolve an input file path.

    Relative paths are resolved against the current working directory.

    Args:
        path_str: Path string to an existing file.

    Returns:
        Resolved Path object pointing to the real file.

    Raises:
        ValueError: If the path doesn't exist or is not a file.
    """
    resolved = Path(path_str).expanduser().resolve()
    if not resolved.exists():
        raise ValueError(f"File not found: {path_str}")
    if not resolved.is_file():
        raise ValueError(f"Path is not a file: {path_str}")
    return resolved


def validate_output_path(path_str: str, base_dir: str | None = None) -> Path:
    """Validate an output file path (file need not exist, but parent must).

    Args:
        path_str: Path string for the output file.
        base_dir: Optional base directory; output must be under this directory.

    Returns:
        Resolved Path object for the output file.

    Raises:
        ValueError: If the parent doesn't exist or path is outside base_dir.
    """
    resolved = Path(path_str).expanduser().resolve()
    if not resolved.parent.exists():
        raise ValueError(f"Output parent directory not found: {resolved.parent}")
    if base_dir is not None:
        base_resolved = Path(base_dir).resolve()
        if not resolved.is_relative_to(base_resolved):
            raise ValueError(
                f"Output path is outside base directory: {resolved} not under {base_resolved}"
            )
    return resolved


# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a test-case file with automatic encoding detection.

    Exports from tracker web UIs are not always UTF-8, so the raw bytes are
    handed to charset-normalizer first.  Empty files and failed detection
    fall back to UTF-8.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    best = from_bytes(raw).best()
    if best is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")

    encoding = best.encoding
    if encoding == "ascii":
        encoding = "utf-8"
    return (str(best), encoding)


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Write content to a file, creating parent directories as needed.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)


# =============================================================================
# Format Detection
# =============================================================================

NOTATION = "notation"
MARKUP = "markup"
JSON = "json"

_EXTENSION_FORMAT_MAP: dict[str, str] = {
    ".json": JSON,
    ".xml": MARKUP,
    ".txt": NOTATION,
    ".tc": NOTATION,
}


def detect_input_format(path: Path | None, content: str) -> str:
    """Detect the input format from extension, falling back to content.

    Known extensions (.json, .xml, .txt, .tc) decide on their own.  Anything
    else is sniffed: a leading ``{`` means a JSON document, a leading
    ``<steps`` element means step markup, everything else is notation.

    Args:
        path: Path to the file, or None when reading from stdin.
        content: File content string.

    Returns:
        Format string: 'notation', 'markup' or 'json'.
    """
    if path is not None:
        suffix = path.suffix.lower()
        if suffix in _EXTENSION_FORMAT_MAP:
            return _EXTENSION_FORMAT_MAP[suffix]

    head = content.lstrip()
    if head.startswith("{"):
        return JSON
    if head[:6].lower() == "<steps":
        return MARKUP
    return NOTATION
