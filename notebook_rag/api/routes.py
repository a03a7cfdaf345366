"""FastAPI routes for notebooks, sources, chat, audio overviews and provider admin.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.  Handlers stay thin: they
validate input, call one service method and shape the response.  Domain
errors propagate to :class:`ErrorHandlingMiddleware`, which maps them to
status codes.

Long-running work (ingestion, notebook generation, audio generation) is
submitted to the background worker; those endpoints answer ``202`` or
``201`` immediately and clients poll the status fields.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Form, HTTPException, Request, UploadFile

from notebook_rag import __version__
from notebook_rag.api.schemas import (
    AcceptedResponse,
    AudioOverviewResponse,
    ChatHistoryResponse,
    ChatRequest,
    ClearHistoryResponse,
    ErrorResponse,
    HealthResponse,
    JobsResponse,
    NotebookCreateRequest,
    NotebookUpdateRequest,
    ProviderConfigCreateRequest,
    ProviderConfigResponse,
    ProviderConfigUpdateRequest,
    SourceResponse,
    SourceUpdateRequest,
    TextSourceRequest,
    UrlSourceRequest,
)
from notebook_rag.interfaces.notebook_store import IProviderConfigStore
from notebook_rag.interfaces.vector_store_provider import IVectorStoreProvider
from notebook_rag.models.admin import OllamaModel, SystemStats
from notebook_rag.models.chat import ChatTurnResult
from notebook_rag.models.notebook import Notebook
from notebook_rag.pipeline.task_runner import BackgroundTaskRunner
from notebook_rag.providers.registry import ProviderRegistry
from notebook_rag.services.admin_service import AdminService
from notebook_rag.services.audio_overview_service import AudioOverviewService
from notebook_rag.services.chat_service import ChatService
from notebook_rag.services.notebook_service import NotebookService
from notebook_rag.utils.errors import NoActiveProviderError, NotFoundError
from notebook_rag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_MAX_UPLOAD_SIZE = 50 * 1024 * 1024  # 50 MB

_ERRORS_404: dict[int | str, dict[str, Any]] = {404: {"model": ErrorResponse}}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_notebook_service(request: Request) -> NotebookService:
    return request.app.state.notebook_service


def _get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def _get_audio_service(request: Request) -> AudioOverviewService:
    return request.app.state.audio_service


def _get_config_store(request: Request) -> IProviderConfigStore:
    return request.app.state.store


def _get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry


def _get_vector_store(request: Request) -> IVectorStoreProvider:
    return request.app.state.vector_store


def _get_runner(request: Request) -> BackgroundTaskRunner:
    return request.app.state.runner


def _get_admin_service(request: Request) -> AdminService:
    return request.app.state.admin_service


NotebookServiceDep = Annotated[NotebookService, Depends(_get_notebook_service)]
ChatServiceDep = Annotated[ChatService, Depends(_get_chat_service)]
AudioServiceDep = Annotated[AudioOverviewService, Depends(_get_audio_service)]
ConfigStoreDep = Annotated[IProviderConfigStore, Depends(_get_config_store)]
RegistryDep = Annotated[ProviderRegistry, Depends(_get_registry)]
VectorStoreDep = Annotated[IVectorStoreProvider, Depends(_get_vector_store)]
RunnerDep = Annotated[BackgroundTaskRunner, Depends(_get_runner)]
AdminServiceDep = Annotated[AdminService, Depends(_get_admin_service)]


# ---------------------------------------------------------------------------
# Health / jobs
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(registry: RegistryDep, vector_store: VectorStoreDep) -> HealthResponse:
    """Report the active provider and vector store availability."""
    try:
        active = await registry.active_chat_config()
        active_info: dict[str, Any] | None = {"provider": active.provider, "model": active.model}
    except NoActiveProviderError:
        active_info = None

    return HealthResponse(
        status="ok",
        version=__version__,
        providers={
            "active_llm": active_info,
            "supported": registry.supported_providers(),
            "vector_store": vector_store.get_provider_name(),
            "vector_store_available": vector_store.is_available(),
        },
    )


@router.get("/jobs", response_model=JobsResponse, summary="Background worker snapshot")
async def jobs(runner: RunnerDep) -> JobsResponse:
    return JobsResponse(**runner.snapshot())


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------


@router.post("/notebooks", response_model=Notebook, status_code=201, summary="Create a notebook")
async def create_notebook(body: NotebookCreateRequest, service: NotebookServiceDep) -> Notebook:
    return await service.create_notebook(
        title=body.title,
        description=body.description,
        icon=body.icon,
        color=body.color,
    )


@router.get("/notebooks", response_model=list[Notebook], summary="List notebooks")
async def list_notebooks(service: NotebookServiceDep) -> list[Notebook]:
    return await service.list_notebooks()


@router.get("/notebooks/{notebook_id}", response_model=Notebook, responses=_ERRORS_404)
async def get_notebook(notebook_id: str, service: NotebookServiceDep) -> Notebook:
    return await service.get_notebook(notebook_id)


@router.patch("/notebooks/{notebook_id}", response_model=Notebook, responses=_ERRORS_404)
async def update_notebook(
    notebook_id: str,
    body: NotebookUpdateRequest,
    service: NotebookServiceDep,
) -> Notebook:
    fields = body.model_dump(exclude_unset=True)
    if fields.get("title", "") is None:
        # title is NOT NULL; an explicit null leaves it unchanged
        del fields["title"]
    return await service.update_notebook(notebook_id, **fields)


@router.delete("/notebooks/{notebook_id}", status_code=204, responses=_ERRORS_404)
async def delete_notebook(notebook_id: str, service: NotebookServiceDep) -> None:
    """Delete a notebook and everything it owns."""
    await service.delete_notebook(notebook_id)


@router.post(
    "/notebooks/{notebook_id}/generate",
    response_model=Notebook,
    status_code=202,
    responses=_ERRORS_404,
    summary="Generate title, summary and example questions",
)
async def generate_notebook_content(notebook_id: str, service: NotebookServiceDep) -> Notebook:
    return await service.request_generation(notebook_id)


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


@router.get(
    "/notebooks/{notebook_id}/sources",
    response_model=list[SourceResponse],
    responses=_ERRORS_404,
)
async def list_sources(notebook_id: str, service: NotebookServiceDep) -> list[SourceResponse]:
    return [SourceResponse.from_source(s) for s in await service.list_sources(notebook_id)]


@router.post(
    "/notebooks/{notebook_id}/sources/text",
    response_model=SourceResponse,
    status_code=201,
    responses=_ERRORS_404,
    summary="Add inline text",
)
async def add_text_source(
    notebook_id: str,
    body: TextSourceRequest,
    service: NotebookServiceDep,
) -> SourceResponse:
    source = await service.add_text_source(notebook_id, content=body.content, title=body.title)
    return SourceResponse.from_source(source)


@router.post(
    "/notebooks/{notebook_id}/sources/url",
    response_model=SourceResponse,
    status_code=201,
    responses={**_ERRORS_404, 422: {"model": ErrorResponse}},
    summary="Add a website or YouTube URL",
)
async def add_url_source(
    notebook_id: str,
    body: UrlSourceRequest,
    service: NotebookServiceDep,
) -> SourceResponse:
    source = await service.add_url_source(
        notebook_id, url=body.url, kind=body.kind, title=body.title
    )
    return SourceResponse.from_source(source)


@router.post(
    "/notebooks/{notebook_id}/sources/upload",
    response_model=SourceResponse,
    status_code=201,
    responses={**_ERRORS_404, 413: {"model": ErrorResponse}},
    summary="Upload a PDF, document or audio file",
)
async def upload_source(
    notebook_id: str,
    file: UploadFile,
    service: NotebookServiceDep,
    title: Annotated[str | None, Form()] = None,
) -> SourceResponse:
    data = await file.read(_MAX_UPLOAD_SIZE + 1)
    if len(data) > _MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=413, detail="File exceeds the 50 MB upload limit")
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    source = await service.add_file_source(
        notebook_id,
        filename=file.filename or "upload",
        data=data,
        content_type=file.content_type,
        title=title,
    )
    return SourceResponse.from_source(source)


@router.get("/sources/{source_id}", response_model=SourceResponse, responses=_ERRORS_404)
async def get_source(source_id: str, service: NotebookServiceDep) -> SourceResponse:
    return SourceResponse.from_source(await service.get_source(source_id))


@router.put("/sources/{source_id}", response_model=SourceResponse, responses=_ERRORS_404)
async def rename_source(
    source_id: str,
    body: SourceUpdateRequest,
    service: NotebookServiceDep,
) -> SourceResponse:
    return SourceResponse.from_source(await service.rename_source(source_id, body.title))


@router.delete("/sources/{source_id}", status_code=204, responses=_ERRORS_404)
async def delete_source(source_id: str, service: NotebookServiceDep) -> None:
    await service.delete_source(source_id)


@router.post(
    "/sources/{source_id}/reprocess",
    response_model=SourceResponse,
    status_code=202,
    responses={**_ERRORS_404, 409: {"model": ErrorResponse}},
    summary="Resubmit a failed source",
)
async def reprocess_source(source_id: str, service: NotebookServiceDep) -> SourceResponse:
    return SourceResponse.from_source(await service.reprocess_source(source_id))


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


@router.post(
    "/notebooks/{notebook_id}/chat",
    response_model=ChatTurnResult,
    responses={
        **_ERRORS_404,
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Ask a question about the notebook's sources",
)
async def send_chat_message(
    notebook_id: str,
    body: ChatRequest,
    service: ChatServiceDep,
) -> ChatTurnResult:
    return await service.answer(notebook_id, body.message)


@router.get(
    "/notebooks/{notebook_id}/chat",
    response_model=ChatHistoryResponse,
    responses=_ERRORS_404,
)
async def get_chat_history(notebook_id: str, service: ChatServiceDep) -> ChatHistoryResponse:
    messages = await service.history(notebook_id)
    return ChatHistoryResponse(notebook_id=notebook_id, messages=messages)


@router.delete(
    "/notebooks/{notebook_id}/chat",
    response_model=ClearHistoryResponse,
    responses=_ERRORS_404,
)
async def clear_chat_history(notebook_id: str, service: ChatServiceDep) -> ClearHistoryResponse:
    removed = await service.clear_history(notebook_id)
    return ClearHistoryResponse(notebook_id=notebook_id, removed=removed)


# ---------------------------------------------------------------------------
# Audio overview
# ---------------------------------------------------------------------------


@router.post(
    "/notebooks/{notebook_id}/audio",
    response_model=AcceptedResponse,
    status_code=202,
    responses=_ERRORS_404,
    summary="Generate an audio overview",
)
async def generate_audio(notebook_id: str, service: NotebookServiceDep) -> AcceptedResponse:
    await service.request_audio_overview(notebook_id)
    return AcceptedResponse(status="generating", message="Audio overview generation started")


@router.get(
    "/notebooks/{notebook_id}/audio",
    response_model=AudioOverviewResponse,
    responses={**_ERRORS_404, 410: {"model": ErrorResponse}},
)
async def get_audio(notebook_id: str, service: AudioServiceDep) -> AudioOverviewResponse:
    audio = await service.get_overview(notebook_id)
    return AudioOverviewResponse(
        notebook_id=notebook_id,
        status=audio.status,
        url=audio.url,
        expires_at=audio.expires_at,
    )


@router.post(
    "/notebooks/{notebook_id}/audio/refresh",
    response_model=AudioOverviewResponse,
    responses=_ERRORS_404,
    summary="Extend the audio URL expiry",
)
async def refresh_audio(notebook_id: str, service: AudioServiceDep) -> AudioOverviewResponse:
    audio = await service.refresh(notebook_id)
    return AudioOverviewResponse(
        notebook_id=notebook_id,
        status=audio.status,
        url=audio.url,
        expires_at=audio.expires_at,
    )


@router.delete("/notebooks/{notebook_id}/audio", status_code=204, responses=_ERRORS_404)
async def delete_audio(notebook_id: str, service: AudioServiceDep) -> None:
    await service.delete(notebook_id)


# ---------------------------------------------------------------------------
# Provider configuration admin
# ---------------------------------------------------------------------------


def _require_supported(registry: ProviderRegistry, provider: str) -> None:
    if provider not in registry.supported_providers():
        raise HTTPException(
            status_code=422,
            detail=(
                f"Unsupported provider '{provider}'. "
                f"Supported: {', '.join(registry.supported_providers())}"
            ),
        )


@router.get("/admin/provider-configs", response_model=list[ProviderConfigResponse])
async def list_provider_configs(store: ConfigStoreDep) -> list[ProviderConfigResponse]:
    return [ProviderConfigResponse.from_config(c) for c in await store.list_provider_configs()]


@router.post(
    "/admin/provider-configs",
    response_model=ProviderConfigResponse,
    status_code=201,
)
async def create_provider_config(
    body: ProviderConfigCreateRequest,
    store: ConfigStoreDep,
    registry: RegistryDep,
) -> ProviderConfigResponse:
    _require_supported(registry, body.provider)
    config = await store.create_provider_config(**body.model_dump())
    return ProviderConfigResponse.from_config(config)


@router.patch(
    "/admin/provider-configs/{config_id}",
    response_model=ProviderConfigResponse,
    responses=_ERRORS_404,
)
async def update_provider_config(
    config_id: int,
    body: ProviderConfigUpdateRequest,
    store: ConfigStoreDep,
    registry: RegistryDep,
) -> ProviderConfigResponse:
    fields = body.model_dump(exclude_unset=True)
    if fields.get("provider") is not None:
        _require_supported(registry, fields["provider"])
    config = await store.update_provider_config(config_id, **fields)
    if config is None:
        raise NotFoundError(message=f"Provider config not found: {config_id}")
    return ProviderConfigResponse.from_config(config)


@router.delete("/admin/provider-configs/{config_id}", status_code=204, responses=_ERRORS_404)
async def delete_provider_config(config_id: int, store: ConfigStoreDep) -> None:
    if not await store.delete_provider_config(config_id):
        raise NotFoundError(message=f"Provider config not found: {config_id}")


@router.get("/admin/stats", response_model=SystemStats, summary="Deployment statistics")
async def admin_stats(service: AdminServiceDep) -> SystemStats:
    return await service.stats()


@router.get(
    "/admin/ollama-models",
    response_model=list[OllamaModel],
    summary="Models installed on the Ollama server",
    responses={502: {"model": ErrorResponse}},
)
async def ollama_models(service: AdminServiceDep) -> list[OllamaModel]:
    return await service.ollama_models()
