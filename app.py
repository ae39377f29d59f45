from contextlib import asynccontextmanager
import logging
import os
from typing import Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings, settings as default_settings
from doc_pipeline.checks import FieldValidator
from doc_pipeline.errors import PlatformError, ValidationError
from doc_pipeline.file_converter import convert_to_image, decode_data_url
from doc_pipeline.models import DocumentProcessingResult, ExtractedData
from doc_pipeline.run_pipeline import DocumentPipeline, build_field_source
from doc_pipeline.storage import UploadStorage
from doc_pipeline.text_extractor import TextExtractor

logger = logging.getLogger(__name__)


class MissingDocumentError(Exception):
    pass


def _error_response(status_code: int, error: str, message: Optional[str] = None, **extra):
    content = {"error": error}
    if message is not None:
        content["message"] = message
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def read_document(request: Request) -> Tuple[bytes, str]:
    """
    Accepts either a multipart file field named ``document`` or a JSON body
    ``{"image": "<base64 data URL>"}``. Returns raw bytes and a filename.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("document")
        if upload is None or not hasattr(upload, "read"):
            raise MissingDocumentError()
        data = await upload.read()
        filename = upload.filename or "document.jpg"
    else:
        try:
            body = await request.json()
        except ValueError:
            raise MissingDocumentError()
        image = body.get("image") if isinstance(body, dict) else None
        if not image or not isinstance(image, str):
            raise MissingDocumentError()
        data, ext = decode_data_url(image)
        filename = f"document{ext}"

    if not data:
        raise MissingDocumentError()
    return data, filename


def create_app(settings: Optional[Settings] = None,
               field_validator: Optional[FieldValidator] = None,
               pipeline: Optional[DocumentPipeline] = None,
               storage: Optional[UploadStorage] = None) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    field_validator = field_validator or FieldValidator(text_extractor=TextExtractor())
    pipeline = pipeline or DocumentPipeline(field_source=build_field_source(field_validator))
    storage = storage or UploadStorage(settings.UPLOAD_DIR)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Shutdown (incl. SIGINT): release OCR worker, sweep staged uploads
        field_validator.text_extractor.cleanup()
        removed = storage.clear()
        logger.info("Removed %d staged upload(s) from %s", removed, storage.upload_dir)

    app = FastAPI(
        title="Identity Document Validation Service",
        description="OCR field extraction, fraud signal checks and face detection for identity documents",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.field_validator = field_validator
    app.state.pipeline = pipeline
    app.state.storage = storage

    async def handle_document(request: Request, process):
        request_dir = None
        try:
            data, filename = await read_document(request)
            if len(data) > settings.MAX_UPLOAD_BYTES:
                return _error_response(413, "Document image too large")

            request_dir = storage.request_dir()
            raw_path = storage.save(request_dir, data, filename)
            image_path = convert_to_image(raw_path, os.path.join(request_dir, "converted"))
            return process(image_path)

        except MissingDocumentError:
            return _error_response(400, "No document image provided")

        except ValidationError as e:
            return _error_response(400, "Validation failed", str(e), violations=e.violations)

        except PlatformError as e:
            return _error_response(400, "Invalid document image", str(e))

        except Exception as e:
            logger.exception("Error processing document")
            return _error_response(
                500,
                "Failed to process document",
                str(e) if settings.is_development else None,
            )

        finally:
            # Cleanup staged files
            storage.discard(request_dir)

    # ------------------------
    # Field Extraction API
    # ------------------------
    @app.post("/api/documents/extract", response_model=ExtractedData)
    async def extract_document(request: Request):
        """
        Extract name, document number and expiration date from an identity document.
        Supports JPG / PNG / HEIC / PDF uploads or a base64 data URL.
        """
        return await handle_document(request, field_validator.process_document)

    # ------------------------
    # Full Validation API
    # ------------------------
    @app.post("/api/documents/validate", response_model=DocumentProcessingResult)
    async def validate_document(request: Request):
        """Fraud signals, document type, extracted fields and face detection in one result."""
        return await handle_document(request, pipeline.run)

    # ------------------------
    # Health Check
    # ------------------------
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": "document-validation"
        }

    return app


app = create_app()


# ------------------------
# Local Dev Entry
# ------------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
