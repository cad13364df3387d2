"""Read-only serving of stored images.

- GET /uploads/{filename} - File body from the content directory
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from pinwall.api.dependencies import get_storage
from pinwall.api.schemas import UPLOADS_URL_PREFIX
from pinwall.services.exceptions import StorageError
from pinwall.services.storage import FileStorage

router = APIRouter(prefix=UPLOADS_URL_PREFIX, tags=["files"])


@router.get("/{filename}", response_class=FileResponse)
async def serve_file(filename: str, storage: FileStorage = Depends(get_storage)) -> FileResponse:
    """Serve a stored file.

    Files of rejected records are deleted, so their URLs return 404.
    """
    try:
        path = storage.path_for(filename)
    except StorageError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(path=str(path), filename=filename)
