# converter_service/api/convert.py
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile
import structlog

from converter_service.core.auth import require_service_token
from converter_service.core.converter import ConversionError, Converter
from converter_service.core.files import (
    FORMATS,
    DocumentFormat,
    UploadTooLarge,
    declared_too_large,
    limit_body,
    read_upload,
    too_large_message,
    validate_upload,
)

logger = structlog.get_logger(__name__)

# Every route on this router sits behind the token check; handlers take no
# body parameters so the upload is only parsed after the request is admitted.
router = APIRouter(dependencies=[Depends(require_service_token)])


def _too_large(message: str) -> JSONResponse:
    return JSONResponse(status_code=413, content={"error": "File too large", "message": message})


async def _convert(request: Request, fmt: DocumentFormat) -> Response:
    converter: Converter = request.app.state.converter
    max_bytes: int = request.app.state.settings.max_upload_bytes

    if declared_too_large(request.headers.get("content-length"), max_bytes):
        return _too_large(too_large_message(max_bytes))

    bounded = Request(request.scope, limit_body(request.receive, max_bytes))
    try:
        async with bounded.form() as form:
            upload = form.get("file")
            if not isinstance(upload, UploadFile):
                return JSONResponse(status_code=400, content={"error": "No file uploaded"})

            error = validate_upload(fmt, upload.filename, upload.content_type)
            if error:
                return JSONResponse(status_code=400, content={"error": error})

            data = await read_upload(upload, max_bytes)
    except UploadTooLarge as e:
        return _too_large(str(e))

    log = logger.bind(format=fmt.name)
    log.info("conversion_started", size_mb=f"{len(data) / (1024 * 1024):.2f}")
    try:
        result = await converter.convert(data, fmt)
    except ConversionError as e:
        log.error("conversion_failed", error=str(e))
        return JSONResponse(status_code=500, content={"error": "Conversion failed", "message": str(e)})

    log.info(
        "conversion_succeeded",
        input_mb=result.input_size_mb,
        output_mb=result.output_size_mb,
        duration_ms=result.duration_ms,
    )
    return Response(
        content=result.pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": 'attachment; filename="converted.pdf"',
            "X-Conversion-Duration": str(result.duration_ms),
            "X-Input-Size-MB": result.input_size_mb,
            "X-Output-Size-MB": result.output_size_mb,
        },
    )


@router.post("/docx")
async def convert_docx(request: Request) -> Response:
    return await _convert(request, FORMATS["docx"])


@router.post("/pptx")
async def convert_pptx(request: Request) -> Response:
    return await _convert(request, FORMATS["pptx"])


@router.post("/ppt")
async def convert_ppt(request: Request) -> Response:
    return await _convert(request, FORMATS["ppt"])
