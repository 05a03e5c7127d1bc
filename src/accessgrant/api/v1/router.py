from fastapi import APIRouter

from src.accessgrant.api.v1 import invites, members

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(invites.router)
api_router.include_router(members.router)
