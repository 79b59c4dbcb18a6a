from fastapi import APIRouter, Request

router = APIRouter(prefix="", tags=["Status"])

@router.get("/status")
def status(request: Request):
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "ok",
        "scheduler": "running" if scheduler is not None and scheduler.running else "off",
    }
