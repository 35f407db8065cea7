from __future__ import annotations


class ArchiveError(Exception):
    pass


class ArchiveBackendUnavailableError(ArchiveError):
    def __init__(self, component: str, reason: str = "not available"):
        super().__init__(f"{component} {reason}")
        self.component = component
        self.reason = reason


class MalformedArchiveError(ArchiveError):
    def __init__(self, reason: str = "Archive could not be read"):
        super().__init__(reason)
        self.reason = reason


class MalformedDocumentError(ArchiveError):
    def __init__(self, reason: str = "Invalid data format - expected recipe collection or array"):
        super().__init__(reason)
        self.reason = reason


class NoValidRecipesError(ArchiveError):
    def __init__(self, source: str, skipped: int = 0):
        super().__init__(f"No valid recipes found in {source}")
        self.source = source
        self.skipped = skipped


class InvalidRecipeError(ArchiveError):
    def __init__(self, field: str, reason: str):
        super().__init__(f"Invalid recipe field '{field}': {reason}")
        self.field = field
        self.reason = reason


class StorageError(ArchiveError):
    pass


class StorageNotConfiguredError(StorageError):
    def __init__(self, backend: str, missing: list[str]):
        super().__init__(f"Missing {backend} configuration. Required: {', '.join(missing)}")
        self.backend = backend
        self.missing = missing


class BundleFetchError(ArchiveError):
    def __init__(self, path: str, reason: str = "Fetch failed"):
        super().__init__(f"Failed to fetch {path}: {reason}")
        self.path = path
        self.reason = reason
