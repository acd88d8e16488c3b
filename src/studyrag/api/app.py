"""FastAPI application exposing StudyRAG services."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from studyrag.api.schemas import (
    ChatRequest,
    ChatResponse,
    CompletionDebug,
    CompletionDiagnosticsResponse,
    DocumentListResponse,
    DocumentSummary,
    DocumentUploadResponse,
)
from studyrag.config import Settings, get_settings
from studyrag.documents import DocumentStore, InMemoryDocumentStore, MongoDocumentStore
from studyrag.errors import (
    CompletionConfigurationError,
    IngestionError,
    InvalidQuestionError,
    PipelineError,
    UnsupportedFileTypeError,
)
from studyrag.ingestion import DocumentIngestor, IngestionConfig, LangChainDocumentIngestor
from studyrag.metrics.observability import bind_correlation_id, clear_correlation_id, configure_logging, get_logger
from studyrag.models import Document
from studyrag.retrieval import KeywordRanker, RankingConfig
from studyrag.services.generation import (
    AnswerSynthesizer,
    AzureOpenAICompletionService,
    AzureOpenAIConfig,
    CompletionService,
    GenerationConfig,
)
from studyrag.services.query import QueryService

DIAGNOSTIC_MESSAGES = (
    {"role": "system", "content": "You are a helpful assistant."},
    {"role": "user", "content": "Say 'Hello, this is a test!' and nothing else."},
)


@dataclass(frozen=True)
class AppDependencies:
    store: DocumentStore
    ingestor: DocumentIngestor
    completion: CompletionService
    query_service: QueryService


def _build_dependencies(settings: Settings) -> AppDependencies:
    if settings.store_backend == "memory":
        store: DocumentStore = InMemoryDocumentStore()
    else:
        store = MongoDocumentStore(
            uri=settings.mongo_uri,
            database=settings.mongo_database,
            collection_name=settings.mongo_collection,
            timeout_ms=settings.mongo_timeout_ms,
        )
    ingestor = LangChainDocumentIngestor(IngestionConfig(preview_chars=settings.preview_chars))
    completion = AzureOpenAICompletionService(
        AzureOpenAIConfig(
            endpoint=settings.azure_openai_endpoint,
            api_key=settings.azure_openai_key,
            deployment=settings.azure_openai_deployment,
            api_version=settings.azure_openai_api_version,
        ),
    )
    ranker = KeywordRanker(
        RankingConfig(
            min_token_length=settings.min_token_length,
            window_before=settings.window_before,
            window_after=settings.window_after,
            fallback_chars=settings.fallback_chars,
            low_confidence_threshold=settings.low_confidence_threshold,
            top_k=settings.top_k,
        ),
    )
    synthesizer = AnswerSynthesizer(completion, GenerationConfig(max_output_tokens=settings.max_output_tokens))
    query_service = QueryService(
        store=store,
        synthesizer=synthesizer,
        ranker=ranker,
        default_user_id=settings.default_user_id,
    )
    return AppDependencies(store=store, ingestor=ingestor, completion=completion, query_service=query_service)


def _error(status_code: int, error: str, details: object | None = None) -> JSONResponse:
    content: dict[str, object] = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def create_app(*, settings: Settings | None = None, dependencies: AppDependencies | None = None) -> FastAPI:
    settings = settings or get_settings()
    deps = dependencies or _build_dependencies(settings)

    configure_logging()
    logger = get_logger("api")
    app = FastAPI(title="StudyRAG API", version="0.1.0")
    app.state.dependencies = deps

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_allow_origins),
            allow_methods=list(settings.cors_allow_methods),
            allow_headers=list(settings.cors_allow_headers),
        )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID", uuid4().hex)
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            return _error(exc.status_code, "Method not allowed")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request", details)

    @app.exception_handler(InvalidQuestionError)
    async def handle_invalid_question(request: Request, exc: InvalidQuestionError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(PipelineError)
    async def handle_pipeline_error(request: Request, exc: PipelineError) -> JSONResponse:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), exc.detail)

    @app.exception_handler(UnsupportedFileTypeError)
    async def handle_unsupported_type(request: Request, exc: UnsupportedFileTypeError) -> JSONResponse:
        return _error(status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, str(exc))

    @app.exception_handler(IngestionError)
    async def handle_ingestion_error(request: Request, exc: IngestionError) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.error("ingestion.error", correlation_id=correlation_id, detail=str(exc))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to upload document", str(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        logger.error("unhandled.error", correlation_id=correlation_id, detail=str(exc))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", {"correlationId": correlation_id})

    def get_dependencies(request: Request) -> AppDependencies:
        return request.app.state.dependencies

    def get_store(dep: AppDependencies = Depends(get_dependencies)) -> DocumentStore:
        return dep.store

    def get_ingestor(dep: AppDependencies = Depends(get_dependencies)) -> DocumentIngestor:
        return dep.ingestor

    def get_completion(dep: AppDependencies = Depends(get_dependencies)) -> CompletionService:
        return dep.completion

    def get_query_service(dep: AppDependencies = Depends(get_dependencies)) -> QueryService:
        return dep.query_service

    @app.post("/api/chat", response_model=ChatResponse)
    def chat(payload: ChatRequest, service: QueryService = Depends(get_query_service)) -> ChatResponse:
        result = service.answer(payload.question, payload.user_id)
        return ChatResponse(answer=result.answer, sources=list(result.sources), chunks_used=result.chunks_used)

    @app.post("/api/documents", response_model=DocumentUploadResponse, status_code=status.HTTP_201_CREATED)
    async def upload_document(
        file: UploadFile = File(...),
        user_id: str | None = Form(default=None, alias="userId"),
        ingestor: DocumentIngestor = Depends(get_ingestor),
        store: DocumentStore = Depends(get_store),
    ) -> DocumentUploadResponse:
        file_name = Path(file.filename or "").name
        if not file_name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
        suffix = Path(file_name).suffix.lower()
        if suffix not in settings.allowed_extensions_tuple:
            await file.close()
            raise HTTPException(
                status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                detail=f"Unsupported file type: {suffix or 'unknown'}",
            )
        owner = user_id or settings.default_user_id
        size_limit = settings.max_upload_size_mb * 1024 * 1024
        with tempfile.TemporaryDirectory() as tmpdir:
            destination = Path(tmpdir) / file_name
            bytes_written = 0
            with destination.open("wb") as out_f:
                while True:
                    chunk = await file.read(1024 * 1024)
                    if not chunk:
                        break
                    out_f.write(chunk)
                    bytes_written += len(chunk)
                    if bytes_written > size_limit:
                        await file.close()
                        raise HTTPException(
                            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                            detail=f"File too large (>{settings.max_upload_size_mb}MB): {file_name}",
                        )
            await file.close()
            if bytes_written == 0:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"File is empty: {file_name}")
            document = ingestor.ingest(
                destination,
                file_name=file_name,
                user_id=owner,
                content_type=file.content_type,
            )
        store.add_document(document)
        logger.info("document.stored", document_id=document.id, file_name=file_name, user_id=owner)
        return DocumentUploadResponse(document=_summarize(document))

    @app.get("/api/documents", response_model=DocumentListResponse)
    def list_documents(
        user_id: str | None = Query(default=None, alias="userId"),
        store: DocumentStore = Depends(get_store),
    ) -> DocumentListResponse:
        owner = user_id or settings.default_user_id
        documents = store.fetch_documents(owner)
        return DocumentListResponse(user_id=owner, documents=[_summarize(doc) for doc in documents])

    @app.post("/api/diagnostics/completion", response_model=CompletionDiagnosticsResponse)
    def diagnose_completion(completion: CompletionService = Depends(get_completion)):
        try:
            result = completion.complete(DIAGNOSTIC_MESSAGES, max_output_tokens=settings.max_output_tokens)
        except CompletionConfigurationError as exc:
            return _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Missing configuration",
                {
                    "hasEndpoint": exc.has_endpoint,
                    "hasApiKey": exc.has_api_key,
                    "hasDeployment": exc.has_deployment,
                },
            )
        except Exception as exc:
            logger.error("diagnostics.error", detail=str(exc))
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Test failed", str(exc))
        answer = result.first_content
        return CompletionDiagnosticsResponse(
            answer=answer,
            debug=CompletionDebug(
                answer_is_empty=answer == "",
                answer_length=len(answer),
                choices_count=len(result.choices),
                finish_reason=result.first_finish_reason,
            ),
        )

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        from studyrag import __version__

        return {"status": "ok", "version": __version__, "environment": settings.environment}

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/healthz/ready")
    def readiness(store: DocumentStore = Depends(get_store)) -> dict[str, str]:
        if store.ping():
            return {"status": "ready"}
        return {"status": "error", "detail": "document store unreachable"}

    return app


def _summarize(document: Document) -> DocumentSummary:
    return DocumentSummary(
        id=document.id,
        file_name=document.file_name,
        upload_date=document.upload_date,
        text_length=document.text_length,
    )


app = create_app()
