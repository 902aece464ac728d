from __future__ import annotations
"""
Index read endpoints.

GET  /files?cursor=<int>   page through the index (PAGE_SIZE per page)
GET  /thumb/{id}           JPEG thumbnail for one record
GET  /stats                totals + last completed scan
GET  /visible?x&y&z        records around a viewpoint, nearest first, with LOD tier
POST /scan                 request a rescan (no-op while one is running)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from filesphere.config import Settings
from filesphere.feature_modules.thumbnails.service import MEDIA_TYPE, ThumbnailGenerator
from filesphere.schemas import FilesPage, ScanOut, StatsOut, VisibleFileOut, VisibleOut
from filesphere.services.index_service import IndexService
from .deps import get_index, get_settings, get_thumbnails

log = logging.getLogger(__name__)

router = APIRouter(tags=["files"])


@router.get("/files")
async def list_files(
    cursor: int = Query(0, ge=0),
    index: IndexService = Depends(get_index),
    cfg: Settings = Depends(get_settings),
):
    limit = cfg.page_size
    records, next_cursor = index.store.page(cursor, limit)
    # exact flag; next_cursor alone needs an extra request on exact multiples
    has_more = cursor + len(records) < index.store.count()
    page = FilesPage(files=records, next_cursor=next_cursor, has_more=has_more)
    return JSONResponse(page.to_wire())


@router.get("/thumb/{file_id}")
async def thumbnail(
    file_id: str,
    index: IndexService = Depends(get_index),
    thumbnails: ThumbnailGenerator = Depends(get_thumbnails),
):
    record = index.store.get(file_id)
    if record is None:
        raise HTTPException(status_code=404, detail="File not found")
    try:
        data = await thumbnails.generate(record.absolute_path, record.type)
    except Exception as e:
        log.exception("thumb: generation failed for %s", record.absolute_path)
        raise HTTPException(status_code=500, detail=str(e))
    return Response(
        content=data,
        media_type=MEDIA_TYPE,
        headers={"Cache-Control": "public, max-age=31536000"},
    )


@router.get("/stats")
async def stats(index: IndexService = Depends(get_index)):
    out = StatsOut(total_files=index.store.count(), last_scan=index.store.last_scan_time())
    return JSONResponse(out.to_wire())


@router.get("/visible")
async def visible(
    x: float = Query(0.0),
    y: float = Query(0.0),
    z: float = Query(0.0),
    view_distance: Optional[float] = Query(None, alias="viewDistance", gt=0),
    index: IndexService = Depends(get_index),
    cfg: Settings = Depends(get_settings),
):
    distance = view_distance or cfg.view_distance
    # pure query on a snapshot; keep it off the event loop for big indexes
    result = await run_in_threadpool(index.visible, (x, y, z), distance)
    out = VisibleOut(
        files=[
            VisibleFileOut(id=vf.record.id, distance=vf.distance, tier=vf.tier, lod=vf.lod)
            for vf in result.files
        ],
        counts=result.counts(),
    )
    return JSONResponse(out.to_wire())


@router.post("/scan")
async def scan(index: IndexService = Depends(get_index)):
    return JSONResponse(ScanOut(started=index.rescan()).to_wire())
