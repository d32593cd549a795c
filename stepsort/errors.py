class SortError(Exception):
    """Base class for every error raised by stepsort."""


class ConfigurationError(SortError):
    """Bad run configuration: unknown algorithm, unsupported input, bad settings."""


class DispatchError(SortError):
    """An execution unit could not be constructed or started."""

    def __init__(self, unit_id, message):
        super().__init__(f"unit {unit_id}: {message}")
        self.unit_id = unit_id


class SortCancelled(SortError):
    """
    Raised at a suspension point once the run has been stopped.
    Unwinds the algorithm body; never reported as an error.
    """
