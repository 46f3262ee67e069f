from plan_ingest_core.assembler import TrainingPlanAssembler
from plan_ingest_core.capabilities import RuntimeCapabilities, detect_capabilities
from plan_ingest_core.config import Settings, load_settings
from plan_ingest_core.enhancement import (
    HttpEnhancementGateway,
    NoopEnhancementGateway,
    SchedulePreferences,
    UserProfile,
    enhance_plan,
)
from plan_ingest_core.errors import (
    DocumentNotFoundError,
    ExternalServiceError,
    ExtractionError,
    PlanIngestError,
    StorageError,
    ValidationError,
)
from plan_ingest_core.extractors import NormalizedText, TextExtractionService
from plan_ingest_core.formats import DocumentFormat, classify_format
from plan_ingest_core.integrity import IntegrityChecker, IntegrityResult
from plan_ingest_core.log import configure_logging, configure_logging_from_settings
from plan_ingest_core.processor import DocumentProcessor, UploadedFile, create_processor
from plan_ingest_core.repair import RepairEngine, RepairResult
from plan_ingest_core.structure import parse_structure, segment_document

__all__ = [
    "__version__",
    "DocumentFormat",
    "DocumentNotFoundError",
    "DocumentProcessor",
    "ExternalServiceError",
    "ExtractionError",
    "HttpEnhancementGateway",
    "IntegrityChecker",
    "IntegrityResult",
    "NoopEnhancementGateway",
    "NormalizedText",
    "PlanIngestError",
    "RepairEngine",
    "RepairResult",
    "RuntimeCapabilities",
    "SchedulePreferences",
    "Settings",
    "StorageError",
    "TextExtractionService",
    "TrainingPlanAssembler",
    "UploadedFile",
    "UserProfile",
    "ValidationError",
    "classify_format",
    "configure_logging",
    "configure_logging_from_settings",
    "create_processor",
    "detect_capabilities",
    "enhance_plan",
    "load_settings",
    "parse_structure",
    "segment_document",
]

__version__ = "0.1.0"
