"""Document processing: validate a file, pick a converter, normalize the result."""

import logging
from pathlib import Path
from typing import Any

from ..config import DEFAULT_CONFIG
from ..converters import ConverterRegistry
from ..errors import CPWError, DocumentProcessingError, ProcessingFailed
from ..models import ProcessedContent

logger = logging.getLogger(__name__)


def validate_file(path: Path, registry: ConverterRegistry, config: dict[str, Any] | None = None) -> list[str]:
    """Human-readable reasons the file cannot be processed. Empty when it can."""
    config = config or {}
    max_size = config.get("max_file_size", DEFAULT_CONFIG["max_file_size"])
    errors = []

    if not path.is_file():
        return [f"File not found: {path}"]

    ext = path.suffix.lower().lstrip(".")
    candidates = registry.converters_for(ext)
    if not candidates:
        errors.append(f"Unsupported file type: .{ext}" if ext else "File has no extension")
    elif not any(c.check_requirements() for c in candidates):
        errors.append(f"No available converter for .{ext}")
        for converter in candidates:
            errors.extend(f"{converter.label}: {e}" for e in converter.requirement_errors())

    try:
        size = path.stat().st_size
    except OSError as e:
        return errors + [f"File is not readable: {e}"]

    if size > max_size:
        errors.append(f"File exceeds maximum size of {max_size // (1024 * 1024)} MB")
    if size == 0:
        errors.append("File is empty")
    return errors


def process_file(path: Path, registry: ConverterRegistry) -> ProcessedContent:
    """Convert one file to ProcessedContent with the best available converter.

    Raises:
        NoProcessorAvailable: nothing registered (or installed) handles the extension.
        ProcessingFailed: the converter failed, for any reason.
    """
    converter = registry.select_for_file(path)
    logger.info(f"Processing {path.name} with {converter.id}")

    try:
        result = converter.process(path)
    except DocumentProcessingError:
        raise
    except CPWError as e:
        raise ProcessingFailed(converter.id, path.name, str(e)) from e
    except Exception as e:
        logger.exception(f"Unexpected error converting {path.name}")
        raise ProcessingFailed(converter.id, path.name, str(e)) from e

    metadata = result.metadata
    if not metadata.title:
        metadata.title = path.stem

    logger.info(f"Processed {path.name}: {len(result.markdown)} characters")
    return ProcessedContent(
        source_identifier=path.name,
        markdown_content=result.markdown,
        processor_id=converter.id,
        metadata=metadata,
        source_kind="document",
        title=metadata.title,
    )


def process_files(paths: list[Path], registry: ConverterRegistry) -> list[ProcessedContent]:
    """Process files in order; stops at the first failure."""
    return [process_file(p, registry) for p in paths]


def process_directory(directory: Path, registry: ConverterRegistry) -> list[ProcessedContent]:
    """Process every supported, non-hidden file under a directory.

    Unsupported or failing files are logged and skipped.
    """
    docs = []
    if not directory.exists():
        return docs

    for path in sorted(directory.rglob("*")):
        if not path.is_file() or path.name.startswith("."):
            continue
        if not registry.is_supported(path.suffix):
            continue
        try:
            docs.append(process_file(path, registry))
        except DocumentProcessingError as e:
            logger.warning(f"Skipping {path}: {e}")
    return docs
