import asyncio
import os

import httpx
from google.genai import errors as genai_errors
from google.genai import types

from conftest import VIDEO_BYTES, FakeProvider, completed, failed, pending, rejected
from videos.client import to_operation
from videos.errors import ErrorKind
from videos.models import (
    ExtendVideoParams,
    Failure,
    FramesToVideoParams,
    ImageData,
    ReferenceImage,
    ReferencesToVideoParams,
    RemoteVideoHandle,
    Success,
)

ASSET = ReferenceImage(data=b"asset-image", mime_type="image/png")


def test_references_to_video_end_to_end(make_generator, clock, store):
    provider = FakeProvider([[pending(), completed()]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(
        ReferencesToVideoParams(prompt="man hiking", reference_images=[ASSET])
    ))

    assert isinstance(outcome, Success)
    assert len(provider.submitted) == 1
    config = provider.submitted[0]["config"]
    assert [ref["referenceType"] for ref in config["referenceImages"]] == ["ASSET"]
    assert "lastFrame" not in config

    artifact = outcome.artifact
    assert artifact.handle == completed().result.generated_videos[0].handle
    assert artifact.data == VIDEO_BYTES
    assert artifact.remote_uri == provider.fetched[0]
    assert artifact.local_url == f"/assets/generated/videos/{artifact.file_name}"
    assert "man-hiking" in artifact.file_name
    with open(store.path_for(artifact.file_name), "rb") as f:
        assert f.read() == VIDEO_BYTES
    assert clock.waits == [10]


def test_extend_without_handle_never_touches_provider(make_generator):
    provider = FakeProvider([])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ExtendVideoParams(prompt="more")))

    assert isinstance(outcome, Failure)
    assert outcome.kind == ErrorKind.PRECONDITION_FAILED
    assert provider.api_keys == []
    assert provider.submitted == []


def test_extend_submits_handle_from_previous_generation(make_generator):
    handle = completed().result.generated_videos[0].handle
    provider = FakeProvider([[completed(name="operations/job-2")]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ExtendVideoParams(handle=handle)))

    assert isinstance(outcome, Success)
    assert provider.submitted[0]["video"] == handle.reference
    assert "aspectRatio" not in provider.submitted[0]["config"]


def test_polls_at_fixed_interval_until_done(make_generator, clock):
    provider = FakeProvider([[pending()] * 6 + [completed()]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(FramesToVideoParams(start_frame=ImageData(data=b"f"))))

    assert isinstance(outcome, Success)
    assert len(provider.polled) == 6
    assert clock.waits == [10] * 6


def test_transient_failure_resubmits_whole_job(make_generator, clock):
    provider = FakeProvider([
        [pending("operations/first"), failed(code=13, name="operations/first")],
        [pending("operations/second"), completed("operations/second")],
    ])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams(prompt="kite")))

    assert isinstance(outcome, Success)
    assert outcome.attempts == 2
    assert len(provider.submitted) == 2
    assert provider.submitted[0] == provider.submitted[1]
    assert [op.name for op in provider.polled] == ["operations/first", "operations/second"]
    assert clock.waits == [10, 2, 10]


def test_transient_failures_beyond_ceiling_are_surfaced(make_generator):
    provider = FakeProvider([[failed(code=13)], [failed(code=13)], [failed(code=13)]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert isinstance(outcome, Failure)
    assert outcome.kind == ErrorKind.TRANSIENT_SERVICE_ERROR
    assert outcome.attempts == 2
    assert len(provider.submitted) == 2


def test_transient_submit_exception_is_retried(make_generator):
    busy = genai_errors.ServerError(500, {"error": {"code": 500, "message": "Internal error encountered.", "status": "INTERNAL"}})
    provider = FakeProvider([[busy], [completed()]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert isinstance(outcome, Success)
    assert len(provider.submitted) == 2


def test_empty_result_is_content_rejection_without_retry(make_generator):
    provider = FakeProvider([[pending(), rejected(reasons=["Unsafe content"])], [completed()]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams(prompt="something")))

    assert isinstance(outcome, Failure)
    assert outcome.kind == ErrorKind.CONTENT_REJECTED
    assert outcome.attempts == 1
    assert "Unsafe content" in outcome.message
    assert len(provider.submitted) == 1
    assert provider.fetched == []


def test_missing_uri_is_malformed_response(make_generator):
    provider = FakeProvider([[completed(uri=None)]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert outcome.kind == ErrorKind.MALFORMED_RESPONSE
    assert provider.fetched == []


def test_fetch_status_error_is_fetch_failed(make_generator):
    request = httpx.Request("GET", "https://example.test/video")
    not_found = httpx.HTTPStatusError("not found", request=request, response=httpx.Response(404, request=request))
    provider = FakeProvider([[completed()]], fetch_error=not_found)
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert outcome.kind == ErrorKind.FETCH_FAILED
    assert outcome.status_code == 404
    assert len(provider.submitted) == 1


def test_fetch_network_error_is_fetch_failed(make_generator):
    provider = FakeProvider([[completed()]], fetch_error=httpx.ConnectError("connection reset"))
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert outcome.kind == ErrorKind.FETCH_FAILED
    assert outcome.status_code is None


def test_auth_failure_is_not_retried(make_generator):
    forbidden = genai_errors.ClientError(403, {"error": {"code": 403, "message": "Permission denied", "status": "PERMISSION_DENIED"}})
    provider = FakeProvider([[forbidden], [completed()]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert outcome.kind == ErrorKind.AUTH_FAILURE
    assert len(provider.submitted) == 1


def test_credential_is_resolved_for_every_attempt(make_generator):
    keys = iter(["key-one", "key-two"])
    provider = FakeProvider([[failed(code=13)], [completed()]])
    generator = make_generator(provider, credential_provider=lambda: next(keys))

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert isinstance(outcome, Success)
    assert provider.api_keys == ["key-one", "key-two"]


def test_missing_credential_is_auth_failure(make_generator):
    def no_key():
        raise ValueError("GEMINI_API_KEY must be set in environment variables")

    provider = FakeProvider([[completed()]])
    generator = make_generator(provider, credential_provider=no_key)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert outcome.kind == ErrorKind.AUTH_FAILURE
    assert provider.submitted == []


def test_cancel_event_stops_polling(make_generator):
    provider = FakeProvider([[pending(), completed()]])
    generator = make_generator(provider)

    async def run():
        cancel_event = asyncio.Event()
        cancel_event.set()
        return await generator.generate(ReferencesToVideoParams(), cancel_event=cancel_event)

    outcome = asyncio.run(run())

    assert outcome.kind == ErrorKind.CANCELLED
    assert provider.polled == []


def test_concurrent_generations_are_independent(make_generator, store):
    provider = FakeProvider([
        [pending("operations/a"), completed("operations/a")],
        [pending("operations/b"), completed("operations/b")],
    ])
    generator = make_generator(provider)

    async def run():
        return await asyncio.gather(
            generator.generate(ReferencesToVideoParams(prompt="first")),
            generator.generate(ReferencesToVideoParams(prompt="second")),
        )

    first, second = asyncio.run(run())

    assert isinstance(first, Success) and isinstance(second, Success)
    assert first.artifact.file_name != second.artifact.file_name
    assert len(os.listdir(store.directory)) == 2


def test_to_operation_keeps_provider_video_as_handle():
    video = types.Video(uri="https://example.test/files/v1?alt=media", mime_type="video/mp4")
    raw = {
        "name": "operations/xyz",
        "done": True,
        "response": {"generated_videos": [{"video": video}], "rai_media_filtered_reasons": None},
    }

    operation = to_operation(raw)

    assert operation.done
    assert operation.error is None
    generated = operation.result.generated_videos[0]
    assert generated.uri == video.uri
    assert generated.handle == RemoteVideoHandle(reference={"uri": video.uri, "mime_type": "video/mp4"})
    assert operation.raw is raw


def test_to_operation_reads_error():
    operation = to_operation({"name": "operations/xyz", "done": True, "error": {"code": 13, "message": "Internal"}})

    assert operation.error.code == 13
    assert operation.result is None


def test_first_item_without_video_is_malformed_response(make_generator):
    operation = to_operation({"name": "operations/xyz", "done": True, "response": {"generated_videos": [{}]}})
    provider = FakeProvider([[operation]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert outcome.kind == ErrorKind.MALFORMED_RESPONSE
    assert outcome.attempts == 1
    assert provider.fetched == []


def test_later_items_are_ignored_when_first_has_no_video(make_generator):
    operation = to_operation({
        "name": "operations/xyz",
        "done": True,
        "response": {"generated_videos": [{}, {"video": {"uri": "https://example.test/files/v2?alt=media"}}]},
    })
    provider = FakeProvider([[operation]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert outcome.kind == ErrorKind.MALFORMED_RESPONSE
    assert provider.fetched == []


def test_to_operation_keeps_items_without_video():
    operation = to_operation({"done": True, "response": {"generated_videos": [{}, {"video": {"uri": "https://e/2"}}]}})

    first, second = operation.result.generated_videos
    assert first.handle is None and first.uri is None
    assert second.uri == "https://e/2"


def test_client_is_closed_after_each_attempt(make_generator):
    provider = FakeProvider([[failed(code=13)], [pending(), completed()]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert isinstance(outcome, Success)
    assert provider.closed == 2


def test_video_is_saved_off_the_event_loop(make_generator, store, monkeypatch):
    offloaded = []
    real_to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func)
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)
    provider = FakeProvider([[completed()]])
    generator = make_generator(provider)

    outcome = asyncio.run(generator.generate(ReferencesToVideoParams()))

    assert isinstance(outcome, Success)
    assert offloaded == [store.save]
    assert os.path.isfile(store.path_for(outcome.artifact.file_name))
