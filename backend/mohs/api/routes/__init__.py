from fastapi import APIRouter

from mohs.api.routes.cases import router as cases_router
from mohs.api.routes.stages import router as stages_router
from mohs.api.routes.billing import router as billing_router

api_router = APIRouter()
api_router.include_router(cases_router)
api_router.include_router(stages_router)
api_router.include_router(billing_router)
