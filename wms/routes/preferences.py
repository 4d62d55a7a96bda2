from fastapi import APIRouter, Request

from wms.utils import success_response
from .schemas import ThemeRequest

preferences_router = APIRouter()


@preferences_router.get("/")
async def get_preferences(request: Request):
    return success_response(data=request.app.state.preferences.preferences.model_dump(mode="json"))


@preferences_router.put("/theme")
async def set_theme(request: Request, body: ThemeRequest):
    prefs = request.app.state.preferences.set_theme(body.theme)
    return success_response(data=prefs.model_dump(mode="json"), message="Theme saved")
