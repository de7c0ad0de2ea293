"""Capability-matched converter selection."""

from pathlib import Path
from typing import Any, Iterable

from ..errors import NoProcessorAvailable
from .base import Converter, normalize_extension


def select_converter(candidates: Iterable[Converter], extension: str) -> Converter:
    """Lowest-weight converter for the extension whose requirements pass."""
    ext = normalize_extension(extension)
    matching = sorted((c for c in candidates if ext in c.extensions), key=lambda c: c.weight)
    for converter in matching:
        if converter.check_requirements():
            return converter
    raise NoProcessorAvailable(ext)


class ConverterRegistry:
    """Explicit registry of converters keyed by the extensions they declare."""

    def __init__(self, converters: Iterable[Converter] = ()):
        self._converters: list[Converter] = []
        for converter in converters:
            self.register(converter)

    def register(self, converter: Converter) -> None:
        if any(c.id == converter.id for c in self._converters):
            raise ValueError(f"Converter already registered: {converter.id}")
        self._converters.append(converter)

    def get(self, converter_id: str) -> Converter | None:
        return next((c for c in self._converters if c.id == converter_id), None)

    def all(self) -> list[Converter]:
        return sorted(self._converters, key=lambda c: c.weight)

    def converters_for(self, extension: str) -> list[Converter]:
        ext = normalize_extension(extension)
        return [c for c in self.all() if ext in c.extensions]

    def select(self, extension: str) -> Converter:
        return select_converter(self._converters, extension)

    def select_for_file(self, path: Path) -> Converter:
        try:
            return self.select(path.suffix)
        except NoProcessorAvailable as e:
            e.filename = path.name
            raise

    def supported_extensions(self) -> list[str]:
        return sorted({ext for c in self._converters for ext in c.extensions})

    def is_supported(self, extension: str) -> bool:
        return normalize_extension(extension) in self.supported_extensions()

    def available(self) -> list[Converter]:
        return [c for c in self.all() if c.check_requirements()]

    def unavailable(self) -> list[tuple[Converter, list[str]]]:
        return [(c, c.requirement_errors()) for c in self.all() if not c.check_requirements()]

    def summary(self) -> list[dict[str, Any]]:
        return [
            {
                "id": c.id,
                "label": c.label,
                "extensions": list(c.extensions),
                "weight": c.weight,
                "available": c.check_requirements(),
                "errors": c.requirement_errors(),
            }
            for c in self.all()
        ]
