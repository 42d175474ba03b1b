"""Incidents router -- batch intake, public listing, and the admin review queue."""

import json
import logging

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from truth_tracker.api.dependencies import DB, Admin
from truth_tracker.api.schemas import IncidentListResponse, IncidentResponse
from truth_tracker.errors import PersistenceError, RecordNotFound

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def save_incident_batch(request: Request, db: DB):
    """Append a raw {source, incidents} batch with a timestamp."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse({"error": "Invalid data"}, status_code=400)

    source = payload.get("source") if isinstance(payload, dict) else None
    incidents = payload.get("incidents") if isinstance(payload, dict) else None
    if not source or not isinstance(incidents, list):
        return JSONResponse({"error": "Invalid data"}, status_code=400)

    try:
        db.save_incident_batch(str(source), incidents)
    except PersistenceError as e:
        logger.error(f"Error saving incidents: {e}")
        return JSONResponse({"error": "Internal Server Error"}, status_code=500)

    logger.info(f"[OK] Stored batch of {len(incidents)} incidents from {source}")
    return {"success": True}


@router.get("", response_model=IncidentListResponse)
async def list_verified_incidents(db: DB, limit: int = Query(100, ge=1, le=500)):
    """Public listing: verified incidents only."""
    incidents = db.get_verified_incidents(limit=limit)
    return IncidentListResponse(
        incidents=[IncidentResponse.from_incident(i) for i in incidents],
        total=len(incidents),
    )


@router.get("/pending", response_model=IncidentListResponse)
async def list_pending_incidents(db: DB, _admin: Admin, limit: int = Query(100, ge=1, le=500)):
    incidents = db.get_pending_incidents(limit=limit)
    return IncidentListResponse(
        incidents=[IncidentResponse.from_incident(i) for i in incidents],
        total=len(incidents),
    )


@router.post("/pending/{incident_id}/approve", response_model=IncidentResponse)
async def approve_incident(incident_id: str, db: DB, admin: Admin):
    try:
        incident = db.approve_incident(incident_id)
    except RecordNotFound as e:
        raise HTTPException(404, str(e))
    except PersistenceError as e:
        raise HTTPException(500, str(e))
    logger.info(f"Incident {incident_id} approved by {admin}")
    return IncidentResponse.from_incident(incident)


@router.post("/pending/{incident_id}/reject")
async def reject_incident(incident_id: str, db: DB, admin: Admin):
    try:
        db.reject_incident(incident_id)
    except RecordNotFound as e:
        raise HTTPException(404, str(e))
    except PersistenceError as e:
        raise HTTPException(500, str(e))
    logger.info(f"Incident {incident_id} rejected by {admin}")
    return {"success": True}
