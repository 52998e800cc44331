import httpx
import pytest

from apps.encoder.errors import RemoteError
from apps.encoder.io.client import ResultSubmitter
from apps.encoder.types import SafePayload

PAYLOAD = SafePayload(encoded_data=[1, 2, 3], audio_scales=[0.5])


@pytest.mark.asyncio
async def test_success_returns_file_path_and_posts_payload(service):
    locator = await service.submitter().submit(PAYLOAD)

    assert locator == "out/1.wav"
    assert len(service.requests) == 1
    request = service.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "http://decoder.test/encode"
    assert service.payloads == [{"encoded_data": [1, 2, 3], "audio_scales": [0.5]}]


@pytest.mark.asyncio
async def test_error_detail_is_surfaced_verbatim(service):
    service.status_code = 422
    service.body = {"detail": "encoded_data must not be empty"}

    with pytest.raises(RemoteError) as info:
        await service.submitter().submit(PAYLOAD)

    assert str(info.value) == "encoded_data must not be empty"
    assert info.value.status_code == 422


@pytest.mark.asyncio
async def test_unparseable_error_body(service):
    service.status_code = 500
    service.body = b"<html>Internal Server Error</html>"

    with pytest.raises(RemoteError, match="^malformed error response$"):
        await service.submitter().submit(PAYLOAD)


@pytest.mark.asyncio
async def test_error_body_without_detail(service):
    service.status_code = 400
    service.body = {"message": "nope"}

    with pytest.raises(RemoteError, match="^malformed error response$"):
        await service.submitter().submit(PAYLOAD)


@pytest.mark.asyncio
async def test_success_without_file_path_fails(service):
    service.body = {"status": "ok"}

    with pytest.raises(RemoteError, match="^malformed success response$"):
        await service.submitter().submit(PAYLOAD)


@pytest.mark.asyncio
async def test_success_with_non_json_body_fails(service):
    service.body = b"out/1.wav"

    with pytest.raises(RemoteError, match="^malformed success response$"):
        await service.submitter().submit(PAYLOAD)


@pytest.mark.asyncio
async def test_connection_failure_is_a_remote_error():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    submitter = ResultSubmitter(base_url="http://decoder.test", transport=httpx.MockTransport(refuse))

    with pytest.raises(RemoteError, match="request to http://decoder.test/encode failed"):
        await submitter.submit(PAYLOAD)


def test_endpoint_and_resource_url_joining():
    submitter = ResultSubmitter(base_url="http://127.0.0.1:8000/", encode_path="encode")

    assert submitter.endpoint == "http://127.0.0.1:8000/encode"
    assert submitter.resource_url("out/1.wav") == "http://127.0.0.1:8000/out/1.wav"
    assert submitter.resource_url("/out/1.wav") == "http://127.0.0.1:8000/out/1.wav"
