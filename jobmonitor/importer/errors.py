"""Exceptions raised by the CSV import pipeline."""

from jobmonitor.importer.base import ImportResult


class ImportPipelineError(Exception):
    """Base class for import pipeline failures."""


class ImportDirectoryError(ImportPipelineError):
    """The drop or archive directory cannot be created or listed."""


class CsvFileError(ImportPipelineError):
    """A CSV file exists but cannot be read."""


class ImportBatchError(ImportPipelineError):
    """One or more files of an "import all" pass failed.

    Files that imported successfully were archived and are listed in
    ``results``; failed files stay in the drop directory and are retried on
    the next pass.
    """

    def __init__(self, failures: dict[str, str], results: list[ImportResult]) -> None:
        self.failures = failures
        self.results = results
        names = ", ".join(sorted(failures))
        super().__init__(f"{len(failures)} file(s) failed to import: {names}")

    @property
    def imported(self) -> int:
        return sum(result.total for result in self.results)
