from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import httpx
from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tts_sdk.config import ReplicateSettings, load_api_key, without_trailing_slash
from tts_sdk.core.cancellation import CancellationToken, ensure_token
from tts_sdk.core.logging import get_logger
from tts_sdk.errors import APICallError, UnsupportedFunctionalityError
from tts_sdk.integrations.http import (
    HttpSession,
    ModelConfig,
    OpenStream,
    combine_headers,
    decode_base64,
    headers_to_dict,
    iter_sse_audio_chunks,
    parse_json,
    with_user_agent_suffix,
)
from tts_sdk.integrations.identifiers import (
    Custom,
    custom,
    decode_custom,
    parse_provider_options,
    resolve_identifier,
)
from tts_sdk.integrations.srt import parse_srt
from tts_sdk.integrations.tts import (
    AudioChunk,
    Capabilities,
    CallOptions,
    ResponseMetadata,
    StreamResult,
    SynthesisResult,
    TimestampedResult,
)

VERSION = "0.1.0"

MINIMAX_SPEECH_02_TURBO_MODEL = "minimax/speech-02-turbo"

DEFAULT_POLL_INTERVAL_SECONDS = 0.8
DEFAULT_POLL_TIMEOUT_SECONDS = 90.0

_MODEL_NS = "replicate.model"
_VOICE_NS = "replicate.voice"


class ReplicateModel(str, Enum):
    MINIMAX_SPEECH_02_TURBO = MINIMAX_SPEECH_02_TURBO_MODEL


class MiniMaxVoice(str, Enum):
    WISE_WOMAN = "Wise_Woman"
    FRIENDLY_PERSON = "Friendly_Person"
    INSPIRATIONAL_GIRL = "Inspirational_girl"
    DEEP_VOICE_MAN = "Deep_Voice_Man"
    CALM_WOMAN = "Calm_Woman"
    CASUAL_GUY = "Casual_Guy"
    LIVELY_GIRL = "Lively_Girl"
    PATIENT_MAN = "Patient_Man"
    YOUNG_KNIGHT = "Young_Knight"
    DETERMINED_MAN = "Determined_Man"
    LOVELY_GIRL = "Lovely_Girl"
    DECENT_BOY = "Decent_Boy"
    IMPOSING_MANNER = "Imposing_Manner"
    ELEGANT_MAN = "Elegant_Man"
    ABBESS = "Abbess"
    SWEET_GIRL_2 = "Sweet_Girl_2"
    EXUBERANT_GIRL = "Exuberant_Girl"


class JobStatus(str, Enum):
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    ABORTED = "aborted"


_PENDING = (JobStatus.STARTING, JobStatus.PROCESSING)


class JobUrls(BaseModel):
    model_config = ConfigDict(extra="ignore")

    get: Optional[str] = None
    cancel: Optional[str] = None
    stream: Optional[str] = None


class RemoteJob(BaseModel):
    """
    A Replicate prediction as returned by create/poll.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    status: JobStatus
    output: Any = None
    error: Optional[str] = None
    urls: Optional[JobUrls] = None


class ReplicateProviderOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    input: Optional[Dict[str, Any]] = None
    wait: Optional[int] = Field(default=None, gt=0)
    webhook: Optional[AnyHttpUrl] = None
    webhook_events_filter: Optional[List[str]] = None


class MiniMaxProviderOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    subtitle_enable: Optional[bool] = None
    voice_id: Optional[str] = None
    extra_input: Optional[Dict[str, Any]] = None


def replicate_custom_speech_model_id(model_id: str) -> Custom:
    return custom(_MODEL_NS, model_id, label="Replicate custom model id")


def replicate_custom_voice(voice: str) -> Custom:
    return custom(_VOICE_NS, voice, label="Replicate custom voice")


def resolve_replicate_speech_model_id(model_id: object) -> str:
    return resolve_identifier(
        model_id,
        known=ReplicateModel,
        namespace=_MODEL_NS,
        label="Replicate model id",
        helper="replicate_custom_speech_model_id",
    )


def resolve_replicate_voice(voice: object, *, model_id: str) -> Optional[str]:
    """
    MiniMax only accepts its known voices (or a tagged custom one); other models take anything.
    """
    if voice is None:
        return None
    if model_id == MINIMAX_SPEECH_02_TURBO_MODEL:
        return resolve_identifier(
            voice,
            known=MiniMaxVoice,
            namespace=_VOICE_NS,
            label="Replicate MiniMax voice",
            helper="replicate_custom_voice",
        )
    decoded = decode_custom(voice, namespace=_VOICE_NS, label="Replicate custom voice")
    if decoded is not None:
        return decoded
    if isinstance(voice, Enum):
        return str(voice.value)
    if isinstance(voice, Custom):
        return voice.value
    return str(voice)


def _is_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


def extract_audio_ref(output: Any) -> Optional[str]:
    if isinstance(output, str):
        return output
    if isinstance(output, list):
        for item in output:
            if isinstance(item, str):
                return item
        return None
    if isinstance(output, dict):
        for key in ("audio", "audio_url", "url", "output"):
            value = output.get(key)
            if isinstance(value, str):
                return value
    return None


def extract_subtitle_ref(output: Any) -> Optional[str]:
    if not isinstance(output, dict):
        return None
    for key in ("subtitle", "subtitles", "subtitle_url"):
        value = output.get(key)
        if isinstance(value, str):
            return value
    return None


class ReplicateTTSModel:
    """
    Replicate predictions are remote jobs: create, poll until terminal, then
    dereference the output. Streaming uses the job's SSE `urls.stream`.
    """

    capabilities = Capabilities(
        supports_streaming=True,
        supports_timestamps=True,
        supports_ssml=False,
        supports_voice_cloning=True,
    )

    def __init__(
        self,
        *,
        model_id: str,
        config: ModelConfig,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        poll_timeout_seconds: float = DEFAULT_POLL_TIMEOUT_SECONDS,
    ) -> None:
        self.provider = config.provider
        self.model_id = model_id
        self._config = config
        self._poll_interval = float(poll_interval_seconds)
        self._poll_timeout = float(poll_timeout_seconds)
        self._log = get_logger(component="replicate", provider=config.provider, model_id=model_id)

    def _request(
        self, options: CallOptions, *, stream: bool = False, subtitles: bool = False
    ) -> Tuple[str, Dict[str, Any], Optional[int]]:
        if options.ssml:
            raise UnsupportedFunctionalityError("ssml")
        replicate_opts = parse_provider_options(
            provider="replicate",
            provider_options=options.provider_options,
            schema=ReplicateProviderOptions,
        )
        minimax_opts = parse_provider_options(
            provider="minimax",
            provider_options=options.provider_options,
            schema=MiniMaxProviderOptions,
        )

        inputs: Dict[str, Any] = {"text": options.text}
        if replicate_opts is not None and replicate_opts.input:
            inputs.update(replicate_opts.input)

        voice = resolve_replicate_voice(options.voice, model_id=self.model_id)
        if voice:
            inputs["voice"] = voice
            inputs["voice_id"] = voice
        if options.output_format:
            inputs["format"] = options.output_format
        if options.speed is not None:
            inputs["speed"] = options.speed

        if minimax_opts is not None:
            if minimax_opts.voice_id:
                inputs["voice_id"] = minimax_opts.voice_id
            if minimax_opts.subtitle_enable is not None:
                inputs["subtitle_enable"] = minimax_opts.subtitle_enable
            if minimax_opts.extra_input:
                inputs.update(minimax_opts.extra_input)

        if subtitles:
            inputs["subtitle_enable"] = True

        body: Dict[str, Any] = {"input": inputs}
        if replicate_opts is not None:
            if replicate_opts.webhook:
                body["webhook"] = str(replicate_opts.webhook)
            if replicate_opts.webhook_events_filter:
                body["webhook_events_filter"] = replicate_opts.webhook_events_filter
        if stream:
            body["stream"] = True

        wait = replicate_opts.wait if replicate_opts is not None else None

        if ":" in self.model_id:
            body["version"] = self.model_id
            return "%s/predictions" % self._config.base_url, body, wait

        owner, _, name = self.model_id.partition("/")
        if not owner or not name:
            raise APICallError(
                "Invalid Replicate model id '%s'. Expected 'owner/model' or 'version'." % self.model_id
            )
        return "%s/models/%s/%s/predictions" % (self._config.base_url, owner, name), body, wait

    async def _headers(self, options: CallOptions) -> Dict[str, str]:
        return combine_headers(await self._config.headers(), options.headers)

    async def _create(
        self, options: CallOptions, token: CancellationToken, *, stream: bool = False, subtitles: bool = False
    ) -> RemoteJob:
        url, body, wait = self._request(options, stream=stream, subtitles=subtitles)
        headers = await self._headers(options)
        if wait is not None:
            headers["Prefer"] = "wait=%d" % wait

        resp = await self._config.session.request(
            "POST",
            url,
            token=token,
            context="Replicate prediction create",
            json_body=body,
            headers=headers,
        )
        job = self._parse_job(resp, "Replicate prediction create")
        self._log.info("job_created", job_id=job.id, status=job.status.value)
        return job

    def _parse_job(self, resp: httpx.Response, context: str) -> RemoteJob:
        data = parse_json(resp, context)
        try:
            return RemoteJob.model_validate(data)
        except ValueError as e:
            raise APICallError(
                "%s returned an unexpected prediction shape." % context,
                status_code=resp.status_code,
                response_body=data,
                cause=e,
            )

    async def _poll(self, job: RemoteJob, options: CallOptions, token: CancellationToken) -> RemoteJob:
        started = time.monotonic()
        current = job
        while current.status in _PENDING:
            token.raise_if_cancelled()
            if time.monotonic() - started > self._poll_timeout:
                raise APICallError(
                    "Replicate prediction '%s' timed out." % current.id,
                    response_body=current.model_dump(mode="json"),
                )
            await token.sleep(self._poll_interval)

            resp = await self._config.session.request(
                "GET",
                "%s/predictions/%s" % (self._config.base_url, current.id),
                token=token,
                context="Replicate prediction poll",
                headers=await self._headers(options),
            )
            current = self._parse_job(resp, "Replicate prediction poll")
            self._log.debug("job_polled", job_id=current.id, status=current.status.value)

        self._log.info("job_finished", job_id=current.id, status=current.status.value)
        if current.status != JobStatus.SUCCEEDED:
            raise APICallError(
                "Replicate prediction failed: %s" % (current.error or current.status.value),
                response_body=current.model_dump(mode="json"),
            )
        return current

    async def _read_audio(self, ref: str, options: CallOptions, token: CancellationToken) -> bytes:
        if ref.startswith("data:"):
            _, _, payload = ref.partition(",")
            return decode_base64(payload)
        if not _is_url(ref):
            return decode_base64(ref)
        resp = await self._config.session.request(
            "GET",
            ref,
            token=token,
            context="Replicate audio download",
            headers=await self._headers(options),
        )
        return resp.content

    async def _read_subtitle(self, ref: str, options: CallOptions, token: CancellationToken) -> Optional[str]:
        if not _is_url(ref):
            return ref
        resp = await self._config.session.request(
            "GET",
            ref,
            token=token,
            context="Replicate subtitle download",
            headers=await self._headers(options),
            check=False,
        )
        if not resp.is_success:
            return None
        return resp.text

    def _require_audio_ref(self, job: RemoteJob) -> str:
        ref = extract_audio_ref(job.output)
        if not ref:
            raise APICallError(
                "Replicate prediction did not return audio output.",
                response_body=job.model_dump(mode="json"),
            )
        return ref

    async def synthesize_once(self, options: CallOptions) -> SynthesisResult:
        token = ensure_token(options.cancellation_token)
        job = await self._poll(await self._create(options, token), options, token)
        audio = await self._read_audio(self._require_audio_ref(job), options, token)
        return SynthesisResult(
            audio=audio,
            media_type="audio/mpeg",
            response=ResponseMetadata(model_id=self.model_id, body=job.model_dump(mode="json")),
        )

    async def synthesize_with_timestamps(self, options: CallOptions) -> TimestampedResult:
        token = ensure_token(options.cancellation_token)
        job = await self._poll(await self._create(options, token, subtitles=True), options, token)
        audio_ref = self._require_audio_ref(job)
        subtitle_ref = extract_subtitle_ref(job.output)

        if subtitle_ref:
            audio, subtitle_text = await asyncio.gather(
                self._read_audio(audio_ref, options, token),
                self._read_subtitle(subtitle_ref, options, token),
            )
        else:
            audio, subtitle_text = await self._read_audio(audio_ref, options, token), None

        return TimestampedResult(
            audio=audio,
            media_type="audio/mpeg",
            response=ResponseMetadata(model_id=self.model_id, body=job.model_dump(mode="json")),
            words=[],
            segments=parse_srt(subtitle_text) if subtitle_text else [],
        )

    async def synthesize_stream(self, options: CallOptions) -> StreamResult:
        token = ensure_token(options.cancellation_token)
        job = await self._create(options, token, stream=True)
        stream_url = job.urls.stream if job.urls else None
        if not stream_url:
            raise UnsupportedFunctionalityError(
                "streamSynthesize",
                "Replicate model '%s' does not expose a stream URL." % self.model_id,
            )

        headers = combine_headers(await self._headers(options), {"Accept": "text/event-stream"})
        stream = await self._config.session.open_stream(
            "GET",
            stream_url,
            token=token,
            context="Replicate stream connect",
            headers=headers,
        )
        return StreamResult(
            audio_stream=self._relay(stream, job, options, token),
            media_type="audio/mpeg",
            response=ResponseMetadata(model_id=self.model_id, headers=headers_to_dict(stream.response.headers)),
        )

    async def _relay(
        self, stream: OpenStream, job: RemoteJob, options: CallOptions, token: CancellationToken
    ) -> AsyncIterator[AudioChunk]:
        yielded = False
        try:
            async for data in token.iterate(iter_sse_audio_chunks(stream.response.aiter_bytes())):
                yielded = True
                yield AudioChunk(data=data)
        finally:
            await stream.aclose()

        if not yielded:
            audio = await self._fallback_audio(job, options, token)
            if audio:
                yield AudioChunk(data=audio)

        yield AudioChunk(data=b"", is_final=True)

    async def _fallback_audio(self, job: RemoteJob, options: CallOptions, token: CancellationToken) -> Optional[bytes]:
        get_url = job.urls.get if job.urls else None
        if not get_url:
            return None
        self._log.info("stream_fallback", job_id=job.id)
        resp = await self._config.session.request(
            "GET",
            get_url,
            token=token,
            context="Replicate prediction fetch",
            headers=await self._headers(options),
            check=False,
        )
        if not resp.is_success:
            return None
        final = self._parse_job(resp, "Replicate prediction fetch")
        ref = extract_audio_ref(final.output)
        if not ref:
            return None
        return await self._read_audio(ref, options, token)


class ReplicateProvider:
    def __init__(
        self,
        *,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 60.0,
        poll_interval_seconds: Optional[float] = None,
        poll_timeout_seconds: Optional[float] = None,
        name: str = "replicate",
        settings: Optional[ReplicateSettings] = None,
    ) -> None:
        s = settings or ReplicateSettings()
        self._api_token = api_token or s.api_token
        self._extra_headers = dict(headers or {})
        self._poll_interval = poll_interval_seconds if poll_interval_seconds is not None else s.poll_interval_seconds
        self._poll_timeout = poll_timeout_seconds if poll_timeout_seconds is not None else s.poll_timeout_seconds
        self._config = ModelConfig(
            provider="%s.speech" % name,
            base_url=without_trailing_slash(base_url or s.base_url),
            headers=self._auth_headers,
            session=HttpSession(client=client, timeout_seconds=timeout_seconds),
        )

    async def _auth_headers(self) -> Dict[str, str]:
        token = load_api_key(
            api_key=self._api_token,
            environment_variable_name="REPLICATE_API_TOKEN",
            description="Replicate",
            api_key_parameter_name="api_token",
        )
        return with_user_agent_suffix(
            combine_headers({"Authorization": "Bearer %s" % token}, self._extra_headers),
            "tts-sdk/replicate/%s" % VERSION,
        )

    def speech(self, model_id: object) -> ReplicateTTSModel:
        return ReplicateTTSModel(
            model_id=resolve_replicate_speech_model_id(model_id),
            config=self._config,
            poll_interval_seconds=self._poll_interval,
            poll_timeout_seconds=self._poll_timeout,
        )

    speech_model = speech

    def minimax_speech_02_turbo(self) -> ReplicateTTSModel:
        return self.speech(ReplicateModel.MINIMAX_SPEECH_02_TURBO)


def create_replicate(**kwargs: Any) -> ReplicateProvider:
    return ReplicateProvider(**kwargs)
