class IngestError(Exception):
    pass


class InvalidArgument(IngestError, ValueError):
    """A job was invoked without the arguments it needs."""


class ConfigurationError(IngestError):
    """Required process configuration, such as an API key, is missing."""


class CatalogEntryNotFound(IngestError):
    def __init__(self, catalog_entry_id: int):
        self.catalog_entry_id = catalog_entry_id
        super().__init__(f"Catalog entry {catalog_entry_id} not found")
