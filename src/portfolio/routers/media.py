from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from portfolio.core.media import get_safe_file_path
from portfolio.shared import Logger, load_config

logger = Logger(__name__).get_logger()

router = APIRouter(tags=["media"])

config = load_config()

uploads_dir = Path(config.paths.files)
uploads_dir.mkdir(parents=True, exist_ok=True)
logger.info("Local media will be stored in: %s", uploads_dir.absolute())


@router.get("/media/{public_id:path}")
async def download_media(public_id: str):
    """Serve a file written by the local media store."""
    if config.media.backend != "local":
        raise HTTPException(status_code=404, detail="Local media is disabled")

    file_path = get_safe_file_path(uploads_dir, public_id)
    if not file_path.is_file():
        logger.warning("Media not found on disk: %s", file_path)
        raise HTTPException(status_code=404, detail="File not found")

    logger.debug("Serving media %s", public_id)
    return FileResponse(path=file_path, filename=file_path.name)
