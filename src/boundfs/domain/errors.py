"""Domain errors."""


class FilesystemError(Exception):
    """Operational failure inside a bounded filesystem."""

    def __init__(self, message: str, path: str = "", operation: str = ""):
        self.message = message
        self.path = path
        self.operation = operation
        super().__init__(f"[{operation}] {path}: {message}" if operation else message)


class FilesystemSecurityError(FilesystemError):
    """Path traversal, foreign absolute path or control-character injection."""
    pass
