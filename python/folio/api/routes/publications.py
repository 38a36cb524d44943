"""Publication routes.

Routes are transport-only:
- Resolve settings and storage clients through dependencies
- Call exactly one service function
- Return success(...) or raise ApiError

Publishing failures are mapped onto API error codes here; the service
layer raises its own exception types.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from folio.api.deps import get_app_settings, get_output_storage, get_source_storage
from folio.config import Settings
from folio.errors import ApiError, ApiErrorCode, InvalidRequestError
from folio.publication.archive import InvalidEpubError
from folio.responses import success_response
from folio.schemas.publications import PublishOut, PublishRequest
from folio.services import publish as publish_service
from folio.services.errors import PublishError
from folio.storage.client import StorageClientBase, StorageError
from folio.storage.paths import validate_filename

router = APIRouter()


@router.post("/publications")
def create_publication(
    request: PublishRequest,
    settings: Annotated[Settings, Depends(get_app_settings)],
    source: Annotated[StorageClientBase, Depends(get_source_storage)],
    output: Annotated[StorageClientBase, Depends(get_output_storage)],
) -> dict:
    """Publish an uploaded EPUB as a Readium web publication.

    Downloads ``filename`` from the EPUB bucket, uploads every resource plus
    positions.json, content.json and manifest.json to the output bucket, and
    returns the manifest's public URL.

    Errors:
        400 E_INVALID_FILENAME: filename missing or contains ".."
        400 E_INVALID_EPUB: the object is not a readable EPUB
        404 E_EPUB_NOT_FOUND: no such object in the EPUB bucket
        500 E_STORAGE_ERROR / E_PROCESSING_FAILED: publishing failed
        500 E_INTERNAL: the manifest would reference an unmaterialized resource
    """
    try:
        filename = validate_filename(request.filename)
    except ValueError as exc:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_FILENAME, str(exc)) from exc

    try:
        result = publish_service.process_epub(filename, settings, source=source, output=output)
    except InvalidEpubError as exc:
        raise ApiError(ApiErrorCode.E_INVALID_EPUB, f"Invalid EPUB: {exc}") from exc
    except PublishError as exc:
        if exc.code == ApiErrorCode.E_INTERNAL.value:
            code = ApiErrorCode.E_INTERNAL
        else:
            code = ApiErrorCode.E_PROCESSING_FAILED
        raise ApiError(code, f"Failed to process EPUB: {exc.message}") from exc
    except StorageError as exc:
        if exc.code == "E_STORAGE_MISSING":
            raise ApiError(ApiErrorCode.E_EPUB_NOT_FOUND, f"EPUB not found: {filename}") from exc
        raise ApiError(ApiErrorCode.E_STORAGE_ERROR, f"Storage error: {exc.message}") from exc

    out = PublishOut(
        manifest_url=result.manifest_url,
        filename=filename,
        base_path=result.base_path,
        resource_count=result.resource_count,
        position_count=result.position_count,
    )
    return success_response(out.model_dump(mode="json"))
