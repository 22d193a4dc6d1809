"""
Custom exceptions for MONGOMAN.

Every error raised by the console core derives from MongomanError, which in
turn stays a RuntimeError so callers that only know about RuntimeError keep
working. Errors carry a ``context`` dict (database, collection, offending
key, ...) that is rendered after the message.
"""

from typing import Any, Dict, List, Optional


def _context_with(context: Optional[Dict[str, Any]], **values: Any) -> Dict[str, Any]:
    merged = dict(context or {})
    merged.update({key: value for key, value in values.items() if value is not None})
    return merged


class MongomanError(RuntimeError):
    """
    Base exception for MONGOMAN errors.

    Attributes:
        message: Error message
        context: Additional context (db_name, collection_name, ...)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        rendered = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} (context: {rendered})"


class InitializationError(MongomanError):
    """Raised when the database connection cannot be established."""

    def __init__(
        self,
        message: str,
        mongo_uri: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=_context_with(context, mongo_uri=mongo_uri or None))
        self.mongo_uri = mongo_uri


class ConfigurationError(MongomanError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        config_key: Setting that failed validation
        config_value: The rejected value, when there was one
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            context=_context_with(
                context, config_key=config_key or None, config_value=config_value
            ),
        )
        self.config_key = config_key
        self.config_value = config_value


class QueryBuildError(MongomanError):
    """
    Raised when user-authored input cannot be turned into a query.

    The operation is aborted before anything reaches the database.
    ``query_type`` names the kind of input: "filter", "pipeline" or "import".
    """

    def __init__(
        self,
        message: str,
        query_type: str = "filter",
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = dict(context or {})
        context.setdefault("query_type", query_type)
        super().__init__(message, context=context)
        self.query_type = query_type


class PipelineBuildError(QueryBuildError):
    """
    Raised when an aggregation pipeline cannot be compiled.

    Attributes:
        stage_index: Position of the offending stage among enabled stages
        stage_type: Verb of the offending stage
    """

    def __init__(
        self,
        message: str,
        stage_index: Optional[int] = None,
        stage_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            query_type="pipeline",
            context=_context_with(
                context, stage_index=stage_index, stage_type=stage_type or None
            ),
        )
        self.stage_index = stage_index
        self.stage_type = stage_type


class BundleValidationError(MongomanError):
    """
    Raised when a backup bundle does not have the expected shape.

    Attributes:
        error_paths: Dotted paths of the offending values ("root" for the top)
    """

    def __init__(
        self,
        message: str,
        error_paths: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=_context_with(context, error_paths=error_paths or None))
        self.error_paths = list(error_paths or [])


class BackupError(MongomanError):
    """Raised when reading a database or collection for backup/export fails."""


class RestoreError(MongomanError):
    """
    Raised when writing a bundle or an import back to the database fails.

    Collections restored before the failure are not rolled back; ``results``
    holds the inserted count per collection up to the failure.
    """

    def __init__(
        self,
        message: str,
        results: Optional[Dict[str, int]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.results = dict(results or {})


class DatabaseOperationError(MongomanError):
    """Raised when a browsing or management call fails in the driver."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=_context_with(context, operation=operation or None))
        self.operation = operation
