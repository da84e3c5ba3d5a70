class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class InsufficientStockError(AppError):
    pass


class AuthorizationError(AppError):
    pass


class ImportFileError(AppError):
    pass
