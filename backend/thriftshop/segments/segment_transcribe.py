from __future__ import annotations

import requests
from flask import Blueprint, current_app, jsonify, request

from thriftshop.integrations.ai.factory import build_ai_provider
from thriftshop.integrations.common import IntegrationDisabledError, IntegrationError, IntegrationMisconfiguredError
from thriftshop.utils.api import json_error


transcribe_bp = Blueprint("transcribe_bp", __name__, url_prefix="/api")


@transcribe_bp.post("/transcribe")
def transcribe():
    audio = request.files.get("audio")
    if audio is None:
        return json_error("No audio file provided", 400)
    try:
        provider = build_ai_provider()
    except (IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        current_app.logger.error("transcribe_unconfigured detail=%s", str(e))
        return json_error("Server configuration error", 500)

    blob = audio.read() or b""
    try:
        result = provider.transcribe(audio=blob, filename="recording.webm", content_type="audio/webm")
    except IntegrationError as e:
        status = int(e.status or 500)
        current_app.logger.warning("transcribe_failed status=%s detail=%s", status, e.message)
        return json_error("Transcription failed", status, details=e.message)
    except requests.RequestException as e:
        return json_error("Failed to process audio", 500, details=str(e))

    current_app.logger.info("transcribe_ok bytes=%s chars=%s", len(blob), len(result.text))
    return jsonify({"success": True, "transcript": result.text}), 200
