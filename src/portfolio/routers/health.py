from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/")
async def server_status():
    return {"status": "success", "message": "server is live"}
