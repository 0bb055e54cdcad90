"""
REST endpoints: session control and the server-side emotion-analysis proxy.
"""
import base64
import binascii
import json
import logging
import re

import requests
from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from core.config import Settings
from core.errors import CameraUnavailableError, ConfigurationError, SessionStateError
from core.models import AnalyzeEmotionRequest, SessionStartRequest
from core.session import SessionController

router = APIRouter()
settings = Settings()
controller = SessionController(settings)
logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


@router.post("/api/analyze-emotion")
def analyze_emotion(body: AnalyzeEmotionRequest):
    """
    Forward one base64 frame to the Hume batch API using the server-held key,
    so the key never reaches the client.

    Returns:
        {"success": true, "data": ...} or an error envelope {"error", "details"?}.
    """
    if not body.imageData:
        return JSONResponse({"error": "No image data provided"}, status_code=400)

    api_key = settings.proxy_key()
    if not api_key:
        logger.error("[api] missing Hume API credentials")
        return JSONResponse({"error": "Server configuration error"}, status_code=500)

    try:
        raw = base64.b64decode(DATA_URL_PREFIX.sub("", body.imageData), validate=False)
    except (binascii.Error, ValueError) as e:
        return JSONResponse({"error": "Invalid image data", "details": str(e)}, status_code=400)

    try:
        resp = requests.post(
            settings.HUME_BATCH_URL,
            headers={"X-Hume-Api-Key": api_key},
            files={"file": ("frame.jpg", raw, "image/jpeg")},
            data={"models": json.dumps({"face": {}})},
            timeout=settings.PROXY_TIMEOUT,
        )
        if not resp.ok:
            logger.error(f"[api] Hume API error {resp.status_code}: {resp.text[:400]}")
            return JSONResponse(
                {"error": "Hume API error", "details": resp.text},
                status_code=resp.status_code,
            )
        return JSONResponse({"success": True, "data": resp.json()})
    except Exception as e:
        logger.exception("[api] analyze-emotion proxy failed")
        return JSONResponse({"error": "Internal server error", "message": str(e)}, status_code=500)


@router.post("/session/start")
def session_start(body: SessionStartRequest | None = None):
    body = body or SessionStartRequest()
    try:
        status = controller.start(body.participant_name, body.notes)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CameraUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return status.model_dump()


@router.post("/session/stop")
def session_stop():
    try:
        report = controller.stop()
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return report.model_dump()


@router.get("/session/status")
def session_status():
    return controller.status().model_dump()


@router.get("/session/report")
def session_report():
    if controller.report is None:
        raise HTTPException(status_code=404, detail="No session report available")
    return controller.report.model_dump()


@router.post("/session/reset")
def session_reset():
    try:
        controller.reset()
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"status": "idle"}
