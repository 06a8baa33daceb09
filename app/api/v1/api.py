from fastapi import APIRouter
from app.api.v1 import auth, ai, billing, user

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(auth.router)
api_router.include_router(ai.router)
api_router.include_router(billing.router)
api_router.include_router(user.router)
