"""Quart application exposing document upload and question answering."""
import logging
import math
from urllib.parse import quote

from pydantic import ValidationError
from quart import Quart, Response, jsonify, request
import structlog

from docqa import config
from docqa.container import Container, build_container
from docqa.documents import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    DocumentError,
)
from docqa.llm_client import LLMClientError
from docqa.schemas import (
    AskRequest,
    AskResponse,
    DocumentOut,
    DocumentsPage,
    UploadResponse,
)

logger = structlog.get_logger()


def configure_logging() -> None:
    """Configure structured JSON logging for the process."""
    logging.basicConfig(format="%(message)s", level=config.LOG_LEVEL.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def create_app(container: Container = None) -> Quart:
    """Create the Quart application.

    Args:
        container: Prebuilt service container (built from config when omitted)

    Returns:
        Configured Quart app
    """
    if container is None:
        configure_logging()
        container = build_container()

    app = Quart(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_BYTES + 1024 * 1024
    app.extensions["docqa"] = container

    @app.before_serving
    async def startup():
        container.startup()

    @app.route("/api/chat/ask", methods=["POST"])
    async def ask():
        """Answer a question from the uploaded documents.

        Expects JSON body:
        {
            "message": "question text"
        }

        Returns JSON:
        {
            "success": true,
            "message": "answer text",
            "document_names": ["source.pdf", ...]
        }
        """
        data = await request.get_json(silent=True) or {}

        try:
            body = AskRequest.model_validate(data)
        except ValidationError as e:
            error_types = [err["type"] for err in e.errors()]
            logger.warning("invalid_ask_request", error_types=error_types)

            if error_types == ["string_too_long"]:
                message = "Message too long (max 2000 characters)."
            else:
                message = "Invalid request."
            return jsonify(AskResponse(success=False, message=message).model_dump()), 400

        question = body.message.strip()
        if not question:
            return jsonify(
                AskResponse(success=False, message="Question cannot be empty.").model_dump()
            ), 400

        answer = await container.chat.ask(question)

        response = AskResponse(
            success=answer.success,
            message=answer.message,
            document_names=answer.cited_document_names,
        )
        return jsonify(response.model_dump()), 200 if answer.success else 500

    @app.route("/api/documents", methods=["GET"])
    async def list_documents():
        """List uploaded documents, newest first, one page at a time."""
        page = max(request.args.get("page", 1, type=int) or 1, 1)
        page_size = request.args.get("page_size", config.DEFAULT_PAGE_SIZE, type=int)
        page_size = min(max(page_size or config.DEFAULT_PAGE_SIZE, 1), 100)

        try:
            documents = container.documents.list_documents(page, page_size)
            total_count = container.documents.count_documents()
        except Exception as e:
            logger.error("documents_list_error", error=str(e))
            return jsonify({"error": "Failed to list documents"}), 500

        body = DocumentsPage(
            documents=[DocumentOut(**d.to_dict()) for d in documents],
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total_count / page_size) if total_count else 0,
        )
        return jsonify(body.model_dump())

    @app.route("/api/documents/upload", methods=["POST"])
    async def upload_document():
        """Store an uploaded file and index its text (multipart field ``file``)."""
        files = await request.files
        upload = files.get("file")

        if upload is None or not upload.filename:
            return jsonify(
                UploadResponse(success=False, message="No file provided.").model_dump()
            ), 400

        data = upload.read()

        try:
            record, report = await container.documents.save_document(
                upload.filename, data, upload.mimetype or ""
            )
        except DuplicateDocumentError as e:
            return jsonify(UploadResponse(success=False, message=str(e)).model_dump()), 409
        except DocumentError as e:
            return jsonify(UploadResponse(success=False, message=str(e)).model_dump()), 400
        except Exception as e:
            logger.error(
                "document_upload_error",
                filename=upload.filename,
                error=str(e),
                error_type=type(e).__name__,
            )
            return jsonify(
                UploadResponse(
                    success=False,
                    message="An error occurred while uploading the document.",
                ).model_dump()
            ), 500

        body = UploadResponse(
            success=True,
            message=f"Document '{record.display_name}' uploaded successfully.",
            document=DocumentOut(**record.to_dict()),
            chunks_stored=report.chunks_stored,
            chunks_failed=report.chunks_failed,
        )
        return jsonify(body.model_dump()), 201

    @app.route("/api/documents/<int:document_id>", methods=["GET"])
    async def get_document(document_id: int):
        record = container.documents.get_document(document_id)
        if record is None:
            return jsonify({"error": "Document not found"}), 404
        return jsonify(DocumentOut(**record.to_dict()).model_dump())

    @app.route("/api/documents/<int:document_id>/download", methods=["GET"])
    async def download_document(document_id: int):
        """Return the stored file as an attachment."""
        try:
            record, data = container.documents.download(document_id)
        except DocumentNotFoundError as e:
            return jsonify({"error": str(e)}), 404

        disposition = f"attachment; filename*=UTF-8''{quote(record.display_name)}"
        return Response(
            data,
            mimetype=record.content_type or "application/octet-stream",
            headers={"Content-Disposition": disposition},
        )

    @app.route("/api/documents/<int:document_id>", methods=["DELETE"])
    async def delete_document(document_id: int):
        """Delete a document together with its vectors and stored file.

        Returns:
            204 No Content if successful
            404 Not Found if the document doesn't exist
        """
        try:
            deleted = await container.documents.delete_document(document_id)
        except Exception as e:
            logger.error("document_delete_error", error=str(e), document_id=document_id)
            return jsonify({"error": "Failed to delete document"}), 500

        if not deleted:
            return jsonify({"error": "Document not found"}), 404
        return "", 204

    @app.route("/health/ready")
    async def health_ready():
        """Readiness probe - check if app can serve requests.

        Checks:
        - Hosted model API is reachable
        - Vector index is loaded
        """
        checks = {
            "status": "healthy",
            "model_api": False,
            "index": container.vector_store.get_stats(),
        }

        try:
            await container.api.list_models()
            checks["model_api"] = True
        except LLMClientError as e:
            checks["status"] = "unhealthy"
            checks["error"] = str(e)

        if not checks["index"]["initialized"]:
            checks["status"] = "unhealthy"

        status_code = 200 if checks["status"] == "healthy" else 503
        return jsonify(checks), status_code

    @app.route("/health/live")
    async def health_live():
        """Liveness probe - check if app is running."""
        return jsonify({"status": "alive"}), 200

    @app.errorhandler(404)
    async def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    async def internal_error(error):
        logger.error("internal_server_error", error=str(error))
        return jsonify({"error": "Internal server error"}), 500

    return app


if __name__ == "__main__":
    # For development - use hypercorn "docqa.main:create_app()" in production
    create_app().run(host=config.HOST, port=config.PORT, debug=True)
