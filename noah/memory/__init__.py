"""Cross-session memory."""

from noah.memory.enricher import ContextEnricher
from noah.memory.extractor import ExtractedObservation, ObservationExtractor
from noah.memory.service import (
    MCPMemoryService,
    MemoryContext,
    MemoryEntity,
    get_memory_service,
    normalize_entity_type,
)

__all__ = [
    "ContextEnricher",
    "ExtractedObservation",
    "MCPMemoryService",
    "MemoryContext",
    "MemoryEntity",
    "ObservationExtractor",
    "get_memory_service",
    "normalize_entity_type",
]
