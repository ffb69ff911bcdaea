from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from taskboard.models.schemas import ErrorResponse, ExtractRequest, ExtractResponse
from taskboard.services.errors import (
    ConfigurationError,
    InvalidInput,
    UnparsableResponse,
    UpstreamError,
)
from taskboard.services.extraction import TextGenerator, extract_tasks
from taskboard.services.gemini import GeminiClient
from taskboard.utils.logging import audit_log

router = APIRouter()


def get_generator() -> TextGenerator:
    return GeminiClient()


def _failed(request_id: str, exc: Exception, status_code: int, body: dict) -> JSONResponse:
    payload = {"kind": getattr(exc, "kind", "unknown")}
    if isinstance(exc, UnparsableResponse):
        payload["reason"] = exc.reason
        payload["raw_text"] = exc.raw_text
    audit_log(request_id, "extract_failed", payload=payload, status="error", error=str(exc))
    return JSONResponse(status_code=status_code, content=body)


@router.post(
    "/api/extract-tasks",
    response_model=ExtractResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def extract(body: ExtractRequest, request: Request, generator: TextGenerator = Depends(get_generator)):
    request_id = request.state.request_id
    audit_log(request_id, "extract_requested", payload={"transcript_chars": len(body.transcript or "")})

    try:
        tasks = extract_tasks(body.transcript, generator, request_id=request_id)
    except InvalidInput as e:
        return _failed(request_id, e, 400, {"error": str(e)})
    except ConfigurationError as e:
        return _failed(request_id, e, 500, {"error": str(e)})
    except UnparsableResponse as e:
        if e.reason == "no_array":
            return _failed(request_id, e, 500, {"error": str(e)})
        return _failed(request_id, e, 500, {"error": str(e), "tasks": []})
    except UpstreamError as e:
        return _failed(request_id, e, 500, {"error": str(e), "tasks": []})

    audit_log(request_id, "extract_succeeded", payload={"count": len(tasks)})
    return {"tasks": tasks}
