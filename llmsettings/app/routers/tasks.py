# -*- coding: utf-8 -*-
"""API routes for task configs (task -> provider/model/parameters)."""

from __future__ import annotations

from pathlib import Path as FilePath
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path

from ...providers import TaskConfig, TaskName
from ...providers import store
from .providers import get_store_path

router = APIRouter(prefix="/llm/tasks", tags=["llm-tasks"])


@router.get("", response_model=List[TaskConfig], summary="List task configs")
async def list_task_configs(
    path: Optional[FilePath] = Depends(get_store_path),
) -> List[TaskConfig]:
    return store.list_task_configs(path)


@router.get(
    "/{task_name}",
    response_model=TaskConfig,
    summary="Get a task config",
)
async def get_task_config(
    task_name: TaskName = Path(..., description="Task name"),
    path: Optional[FilePath] = Depends(get_store_path),
) -> TaskConfig:
    config = store.get_task_config(task_name, path)
    if config is None:
        raise HTTPException(
            status_code=404,
            detail=f"No config stored for task '{task_name.value}'",
        )
    return config


@router.put(
    "/{task_name}",
    response_model=TaskConfig,
    summary="Save a task config",
)
async def update_task_config(
    task_name: TaskName = Path(..., description="Task name"),
    body: TaskConfig = Body(...),
    path: Optional[FilePath] = Depends(get_store_path),
) -> TaskConfig:
    if body.task_name != task_name:
        raise HTTPException(
            status_code=400,
            detail="task_name in body does not match the URL",
        )
    return store.update_task_config(body, path)
