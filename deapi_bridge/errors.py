class OperationError(Exception):
    """Raised when an operation fails for one input item.

    ``context`` carries machine-readable details (``item_index`` is added by
    the router) so that callers can tell which item broke the run.
    """

    def __init__(self, message: str, context: dict | None = None, description: str | None = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})
        self.description = description


class UnsupportedOperationError(OperationError):
    pass
