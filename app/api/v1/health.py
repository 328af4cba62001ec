from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    rid = getattr(request.state, "request_id", None)
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "ok",
        "request_id": rid,
        "scheduler_running": bool(scheduler and scheduler.is_running),
    }
