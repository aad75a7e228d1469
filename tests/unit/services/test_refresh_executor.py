"""Tests for RefreshExecutor against a mocked transport."""

import httpx
import pytest

from presigned_media.errors import NetworkError, ProtocolError
from presigned_media.models.references import EntityAssociation
from presigned_media.services.refresh_executor import static_token_provider


class TestRequest:
    async def test_sends_key_and_accept_header(self, executor, backend):
        await executor.execute("images/a b.png")

        request = backend.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/v1/files/refresh-url"
        assert request.url.params["fileKey"] == "images/a b.png"
        assert "entityType" not in request.url.params
        assert request.headers["Accept"] == "application/json"
        assert "Authorization" not in request.headers

    async def test_sends_association_params(self, executor, backend):
        await executor.execute("images/a.png", EntityAssociation(entity_type="album", entity_id=42))

        params = backend.requests[0].url.params
        assert params["entityType"] == "album"
        assert params["entityId"] == "42"

    async def test_bearer_token_from_provider(self, make_executor, backend):
        executor = make_executor(token_provider=static_token_provider("tok-123"))
        await executor.execute("images/a.png")
        assert backend.requests[0].headers["Authorization"] == "Bearer tok-123"

    async def test_async_token_provider(self, make_executor, backend):
        async def provider():
            return "async-tok"

        executor = make_executor(token_provider=provider)
        await executor.execute("images/a.png")
        assert backend.requests[0].headers["Authorization"] == "Bearer async-tok"

    async def test_empty_token_sends_no_header(self, make_executor, backend):
        executor = make_executor(token_provider=static_token_provider(""))
        await executor.execute("images/a.png")
        assert "Authorization" not in backend.requests[0].headers


class TestResponse:
    async def test_parses_envelope(self, executor, backend):
        backend.push(
            {
                "success": True,
                "data": {
                    "fileKey": "images/a.png",
                    "presignedUrl": "https://cdn/file/b/images/a.png?sig=1",
                    "expiresIn": 3600,
                },
            }
        )

        result = await executor.execute("images/a.png")

        assert result.file_key == "images/a.png"
        assert result.url == "https://cdn/file/b/images/a.png?sig=1"
        assert result.expires_in == 3600

    async def test_missing_file_key_defaults_to_request_key(self, executor, backend):
        backend.push({"success": True, "data": {"presignedUrl": "https://cdn/x"}})
        result = await executor.execute("images/a.png")
        assert result.file_key == "images/a.png"
        assert result.expires_in is None

    async def test_unsuccessful_envelope_uses_message(self, executor, backend):
        backend.push({"success": False, "message": "File not found"})
        with pytest.raises(ProtocolError, match="File not found"):
            await executor.execute("images/a.png")

    async def test_missing_presigned_url_is_protocol_error(self, executor, backend):
        backend.push({"success": True, "data": {"fileKey": "images/a.png"}})
        with pytest.raises(ProtocolError, match="Invalid response from server"):
            await executor.execute("images/a.png")

    async def test_non_json_body_is_protocol_error(self, executor, backend):
        backend.push(httpx.Response(200, content=b"<html>oops</html>"))
        with pytest.raises(ProtocolError):
            await executor.execute("images/a.png")

    @pytest.mark.parametrize("expires_in", [10**12, float("inf"), -1])
    async def test_out_of_range_expires_in_is_protocol_error(self, executor, backend, expires_in):
        backend.expires_in = expires_in
        with pytest.raises(ProtocolError):
            await executor.execute("images/a.png")

    async def test_non_2xx_is_network_error_with_status_text(self, executor, backend):
        backend.push(httpx.Response(503))
        with pytest.raises(NetworkError, match="Service Unavailable") as exc_info:
            await executor.execute("images/a.png")
        assert exc_info.value.status_code == 503

    async def test_transport_error_is_network_error(self, executor, backend):
        backend.push(httpx.ConnectError("connection refused"))
        with pytest.raises(NetworkError, match="connection refused") as exc_info:
            await executor.execute("images/a.png")
        assert exc_info.value.status_code is None

    async def test_one_round_trip_per_call(self, executor, backend):
        await executor.execute("images/a.png")
        await executor.execute("images/a.png")
        assert backend.calls == 2
