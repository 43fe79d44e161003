# -*- coding: utf-8 -*-
from fastapi import APIRouter

from .providers import router as providers_router
from .tasks import router as tasks_router

router = APIRouter()
router.include_router(providers_router)
router.include_router(tasks_router)

__all__ = ["router"]
