class BlockStatsError(Exception):
    """Base class for errors that abort an analysis run."""
    pass


class ChainClientError(BlockStatsError):
    """A block, header or receipt request to the node failed."""
    pass


class LocatorError(BlockStatsError):
    """The block at a timestamp could not be located."""
    pass


class FetchError(BlockStatsError):
    """A block in the analysed range could not be fetched."""

    def __init__(self, height: int, message: str) -> None:
        super().__init__(f"Fetching block {height} failed: {message}")
        self.height = height


class DatasetError(BlockStatsError):
    """An address dataset file is malformed."""
    pass
