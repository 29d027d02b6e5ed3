"""Domain exceptions and their HTTP mappings."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from blog_post_api.metrics import store_errors_total

log = structlog.get_logger()


class BlogPostError(Exception):
    """Base class for errors raised by the blog post service."""


class PostValidationError(BlogPostError):
    """Raised when a request payload fails validation."""


class PostNotFoundError(BlogPostError):
    """Raised when the referenced post id does not exist."""

    def __init__(self, post_id: str) -> None:
        super().__init__(f"Post {post_id} not found")
        self.post_id = post_id


class StoreError(BlogPostError):
    """Raised when the backing store fails. Never retried by this layer."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


async def _validation_error(request: Request, exc: PostValidationError) -> JSONResponse:
    await log.ainfo("request_rejected", path=request.url.path, reason=str(exc))
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()
    ]
    await log.ainfo("request_rejected", path=request.url.path, errors=len(errors))
    return JSONResponse(status_code=400, content={"detail": errors})


async def _not_found(request: Request, exc: PostNotFoundError) -> JSONResponse:
    await log.ainfo("post_not_found", post_id=exc.post_id)
    return JSONResponse(status_code=404, content={"detail": "Post not found"})


async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    store_errors_total.add(1, {"operation": exc.operation})
    await log.aerror("store_error", operation=exc.operation, path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Storage unavailable"})


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain exceptions to HTTP status codes."""
    app.add_exception_handler(PostValidationError, _validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError,
        _request_validation_error,  # type: ignore[arg-type]
    )
    app.add_exception_handler(PostNotFoundError, _not_found)  # type: ignore[arg-type]
    app.add_exception_handler(StoreError, _store_error)  # type: ignore[arg-type]
