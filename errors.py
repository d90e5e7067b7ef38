class UnsupportedDimension(LookupError):
    """A report section was requested for a field the log format never provides."""

    def __init__(self, dimension, log_format):
        self.dimension = dimension
        self.log_format = log_format
        super().__init__(
            f"dimension '{dimension.value}' is not available for '{log_format.value}' logs"
        )


class NoInputAvailable(RuntimeError):
    """None of the requested access logs could be read."""
