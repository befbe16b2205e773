"""Pack directories of chapter images into CBZ or EPUB volumes."""
from .config import ConversionConfig, build_config, load_metadata
from .errors import (
    AsyncTaskError,
    ConfigError,
    ContainerError,
    InvalidPathError,
    NotFoundError,
    PathTooLongError,
    TankobonError,
    UnsupportedFormatError,
    VolumeStructureError,
)
from .pipeline import (
    analyze_source,
    convert_from_collected_data,
    convert_from_source,
    convert_from_structured_data,
    preflight_check,
    structure_from_collected_data,
)
from .types_ import (
    CollectionDepth,
    CoverOptions,
    Direction,
    EbookMetadata,
    ExecutionMode,
    FileFormat,
    FindingKind,
    VolumeGroupingStrategy,
)

__version__ = "0.1.0"
