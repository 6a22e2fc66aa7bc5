import json
from collections.abc import Awaitable, Callable
from typing import NamedTuple, TypeAlias, TypeVar

from fastapi import HTTPException, Request
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from portfolio.shared import Logger

logger = Logger(__name__).get_logger()


class Unwrapped(NamedTuple):
    data: BaseModel
    files: dict[str, UploadFile]


UnwrapHandler: TypeAlias = Callable[[Request], Awaitable[Unwrapped]]

T = TypeVar("T", bound=BaseModel)


def describe_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


class FormPayload:
    """Builds dependencies that accept either a JSON body or a form body.

    Multipart bodies are split into scalar fields, which are validated into
    the requested model, and uploaded files, which are handed back untouched.
    File inputs submitted without a file are dropped.
    """

    @classmethod
    def unwrap(cls, output_type: type[T]) -> UnwrapHandler:
        logger.debug("Creating unwrap handler for output type: %s", output_type.__name__)

        async def unwrap_handler(request: Request) -> Unwrapped:
            fields, files = await cls._read_body(request)
            try:
                result = output_type.model_validate(fields)
            except ValidationError as e:
                logger.warning("Failed to unwrap payload: %s", e)
                raise HTTPException(
                    status_code=400, detail=describe_validation_error(e)
                ) from e

            logger.debug(
                "Unwrapped payload into %s with files %s",
                output_type.__name__,
                sorted(files),
            )
            return Unwrapped(result, files)

        return unwrap_handler

    @staticmethod
    async def _read_body(request: Request) -> tuple[dict, dict[str, UploadFile]]:
        content_type = request.headers.get("content-type", "")

        if content_type.startswith(
            ("multipart/form-data", "application/x-www-form-urlencoded")
        ):
            form = await request.form()
            fields: dict = {}
            files: dict[str, UploadFile] = {}
            for key, value in form.multi_items():
                if isinstance(value, UploadFile):
                    if value.filename:
                        files[key] = value
                elif value != "":
                    fields[key] = value
            return fields, files

        body = await request.body()
        if not body:
            return {}, {}
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            logger.warning("Request body is not valid JSON: %s", e)
            raise HTTPException(status_code=400, detail="Invalid JSON body") from e
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="JSON body must be an object")
        return payload, {}
