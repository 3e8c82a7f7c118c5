"""Translation of engine and store errors into HTTP errors."""

from fastapi import HTTPException, status

from cramdeck.errors import InconsistentModeState, NotFoundError, SchedulingError


def http_error(exc: NotFoundError | SchedulingError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InconsistentModeState):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return HTTPException(status_code=code, detail=str(exc))
