# jagacall/analysis/orchestrator.py

"""
The three analysis flows: call, voice and file.

Each flow goes

    validate -> build prompt -> call ILMU -> parse -> assemble payload -> envelope

and returns an `AnalysisOutcome` (HTTP status + envelope) instead of
raising. Client mistakes become 400s before ILMU is contacted. Upstream
failures become a generic 500 with the detail logged. File uploads live in
transient storage that is deleted before the outcome is returned, whichever
step the flow stopped at.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from fastapi import UploadFile

from jagacall import envelope
from jagacall.ai.ilmu_client import ProviderRequest
from jagacall.ai.prompts import AnalysisRequest, build_prompt, describe_file, sanitize
from jagacall.ai.result_parser import ParseFailure, build_result, try_parse
from jagacall.analysis.schema import AnalysisKind
from jagacall.config import Settings
from jagacall.errors import INTERNAL_ERROR, InvalidInput, JagaCallError, UpstreamFailure
from jagacall.models import (
    AnalysisResult,
    CallAnalysisRequest,
    CallDetectBody,
    FileAnalysisRequest,
    VoiceAnalysisRequest,
    VoiceAnalyzeBody,
)
from jagacall.storage.janitor import TransientFile, read_text_excerpt, store_upload, transient_file

logger = logging.getLogger("jagacall")


class Provider(Protocol):
    def build_request(self, model: str, messages: List[Dict[str, str]]) -> ProviderRequest: ...

    async def send(self, request: ProviderRequest) -> str: ...


@dataclass(frozen=True)
class AnalysisOutcome:
    status_code: int
    envelope: Dict[str, Any]


def _require_text(value: Any, message: str) -> str:
    # judged on what would reach the prompt, not on the raw text
    if not isinstance(value, str) or not sanitize(value):
        raise InvalidInput(message)
    return value


def _base_mime(content_type: Optional[str]) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


class AnalysisOrchestrator:
    def __init__(self, settings: Settings, provider: Provider):
        self.settings = settings
        self.provider = provider

    # ---------------------------------------------------------
    # Public flows
    # ---------------------------------------------------------
    async def analyze_call(self, body: CallDetectBody) -> AnalysisOutcome:
        async def flow() -> Dict[str, Any]:
            transcript = _require_text(body.transcript, "Transcript is required")
            request = CallAnalysisRequest(
                content=transcript,
                language=body.language or "mixed",
                metadata=body.metadata if body.metadata is not None else {},
            )
            result = await self._analyze(AnalysisKind.CALL, request, self.settings.text_model)
            payload = result.to_payload()
            payload["metadata"] = request.metadata
            return payload

        return await self._respond(AnalysisKind.CALL, flow)

    async def analyze_voice(self, body: VoiceAnalyzeBody) -> AnalysisOutcome:
        async def flow() -> Dict[str, Any]:
            transcript = _require_text(body.transcript, "Transcript is required")
            request = VoiceAnalysisRequest(
                content=transcript,
                language=body.language or "mixed",
                metadata=body.metadata if body.metadata is not None else {},
                audio_duration=body.audio_duration,
            )
            result = await self._analyze(AnalysisKind.VOICE, request, self.settings.text_model)
            payload = result.to_payload()
            payload["audioDuration"] = request.audio_duration
            payload["metadata"] = request.metadata
            return payload

        return await self._respond(AnalysisKind.VOICE, flow)

    async def analyze_file(
        self,
        upload: Optional[UploadFile],
        file_name: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> AnalysisOutcome:
        async def flow() -> Dict[str, Any]:
            if upload is None:
                raise InvalidInput("File is required")
            mime = _base_mime(upload.content_type)
            if mime not in self.settings.allowed_upload_types:
                raise InvalidInput("Invalid file type")

            async with transient_file(self.settings.upload_dir) as handle:
                size = await store_upload(upload, handle, self.settings.max_upload_bytes)
                name = (file_name or "").strip() or upload.filename or "upload"
                declared_type = (file_type or "").strip() or mime
                request = await self._file_request(handle, mime, name, declared_type, size)

                result = await self._analyze(AnalysisKind.FILE, request, self.settings.file_model)
                payload: Dict[str, Any] = {
                    "fileName": request.file_name,
                    "fileType": request.file_type,
                    "fileSize": request.file_size,
                }
                payload.update(result.to_payload())
                return payload

        return await self._respond(AnalysisKind.FILE, flow)

    # ---------------------------------------------------------
    # Steps
    # ---------------------------------------------------------
    async def _file_request(
        self, handle: TransientFile, mime: str, name: str, declared_type: str, size: int
    ) -> FileAnalysisRequest:
        try:
            excerpt = await read_text_excerpt(handle, mime)
        except OSError as exc:
            logger.warning(json.dumps({"event": "file_read_failed", "error": str(exc)}))
            excerpt = f"Unable to read file content. File info: {name}, Type: {declared_type}"

        content = excerpt if excerpt is not None else describe_file(name, declared_type, size)
        _require_text(content, "File content is empty")
        return FileAnalysisRequest(
            content=content,
            file_name=name,
            file_type=declared_type,
            file_size=size,
            storage_path=str(handle.path),
            content_is_text=excerpt is not None,
        )

    async def _analyze(
        self, kind: AnalysisKind, request: AnalysisRequest, model: str
    ) -> AnalysisResult:
        prompt = build_prompt(kind, request)
        raw = await self.provider.send(self.provider.build_request(model, prompt.messages()))

        outcome = try_parse(raw)
        if isinstance(outcome, ParseFailure):
            logger.warning(
                json.dumps(
                    {"event": "unparseable_response", "kind": kind.value, "reason": outcome.reason}
                )
            )
        return build_result(outcome, kind, model)

    async def _respond(
        self, kind: AnalysisKind, flow: Callable[[], Awaitable[Dict[str, Any]]]
    ) -> AnalysisOutcome:
        start = time.perf_counter()
        try:
            payload = await flow()
        except UpstreamFailure as exc:
            logger.error(
                json.dumps(
                    {
                        "event": "upstream_failure",
                        "kind": kind.value,
                        "error": type(exc).__name__,
                        "detail": exc.message,
                        "status": getattr(exc, "status", None),
                        "body": getattr(exc, "body", None),
                    }
                )
            )
            return AnalysisOutcome(
                exc.status_code, envelope.failure(exc.public_message, exc.code)
            )
        except JagaCallError as exc:
            return AnalysisOutcome(
                exc.status_code, envelope.failure(exc.public_message, exc.code)
            )
        except Exception:
            logger.exception("%s analysis error", kind.value.capitalize())
            return AnalysisOutcome(
                500, envelope.failure("Internal server error", INTERNAL_ERROR)
            )

        logger.info(
            json.dumps(
                {
                    "event": "analysis_complete",
                    "kind": kind.value,
                    "risk_level": payload.get("riskLevel"),
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                }
            )
        )
        return AnalysisOutcome(200, envelope.success(payload))
