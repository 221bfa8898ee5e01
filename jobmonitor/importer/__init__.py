from jobmonitor.importer.base import BatchImportResult, ExecutionChange, ImportResult
from jobmonitor.importer.engine import (
    ensure_directories,
    import_all_csv_files,
    import_and_archive,
    import_csv_file,
)
from jobmonitor.importer.errors import (
    CsvFileError,
    ImportBatchError,
    ImportDirectoryError,
    ImportPipelineError,
)
from jobmonitor.importer.hotfolder import HotfolderWatcher, WatcherState

__all__ = [
    "BatchImportResult",
    "CsvFileError",
    "ExecutionChange",
    "HotfolderWatcher",
    "ImportBatchError",
    "ImportDirectoryError",
    "ImportPipelineError",
    "ImportResult",
    "WatcherState",
    "ensure_directories",
    "import_all_csv_files",
    "import_and_archive",
    "import_csv_file",
]
