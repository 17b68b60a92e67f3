# tests/unit/services/mercadolibre/test_meli_client.py
import httpx
import pytest
from unittest.mock import AsyncMock

from catalog_proxy.core.exceptions import AuthError, RateLimitError, TransientFetchError
from catalog_proxy.services.mercadolibre.client import ITEM_ATTRIBUTES, MercadoLibreClient


def make_response(mocker, status_code=200, json_data=None, text=""):
    response = mocker.MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = text
    return response


@pytest.fixture
def http_request(mocker):
    """Patched httpx.AsyncClient; returns the awaited request mock"""
    mock_client = mocker.patch("httpx.AsyncClient")
    request = AsyncMock()
    mock_client.return_value.__aenter__.return_value.request = request
    return request


@pytest.fixture
def mock_sleep(mocker):
    return mocker.patch("catalog_proxy.services.mercadolibre.client.asyncio.sleep", new=AsyncMock())


"""
1. Request plumbing
"""

@pytest.mark.asyncio
async def test_make_request_sends_bearer_token(mocker, settings, mock_auth_manager, http_request):
    """Test the access token is sent on every call"""
    http_request.return_value = make_response(mocker, json_data={"id": "MLU1"})
    client = MercadoLibreClient(settings, mock_auth_manager)

    result = await client._make_request("GET", "/items/MLU1")

    assert result == {"id": "MLU1"}
    _, kwargs = http_request.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer APP_USR-test-token"
    assert kwargs["url"] == "https://api.mercadolibre.com/items/MLU1"


@pytest.mark.asyncio
async def test_search_items_scan_params(mocker, settings, mock_auth_manager):
    """Test scan mode sends search_type and the scroll cursor, not an offset"""
    mock_make_request = mocker.patch.object(MercadoLibreClient, "_make_request", new=AsyncMock(return_value={}))
    client = MercadoLibreClient(settings, mock_auth_manager)

    await client.search_items("123456", limit=50, scroll_id="abc", scan=True, status="paused")

    mock_make_request.assert_called_once_with(
        "GET",
        "/users/123456/items/search",
        params={"limit": 50, "search_type": "scan", "scroll_id": "abc", "status": "paused"},
    )


@pytest.mark.asyncio
async def test_get_items_joins_ids(mocker, settings, mock_auth_manager):
    """Test the multi-get call asks for all ids and the attribute subset"""
    mock_make_request = mocker.patch.object(
        MercadoLibreClient, "_make_request", new=AsyncMock(return_value=[{"code": 200, "body": {}}])
    )
    client = MercadoLibreClient(settings, mock_auth_manager)

    result = await client.get_items(["MLU1", "MLU2"])

    assert result == [{"code": 200, "body": {}}]
    mock_make_request.assert_called_once_with(
        "GET", "/items", params={"ids": "MLU1,MLU2", "attributes": ITEM_ATTRIBUTES}
    )


@pytest.mark.asyncio
async def test_get_items_rejects_non_list(mocker, settings, mock_auth_manager):
    mocker.patch.object(MercadoLibreClient, "_make_request", new=AsyncMock(return_value={"error": "x"}))
    client = MercadoLibreClient(settings, mock_auth_manager)

    with pytest.raises(TransientFetchError):
        await client.get_items(["MLU1"])


"""
2. Rate limiting and error mapping
"""

@pytest.mark.asyncio
async def test_rate_limit_backs_off_then_succeeds(mocker, settings, mock_auth_manager, http_request, mock_sleep):
    """Four 429s then a 200: four sleeps of 1, 2, 4 and 8 seconds"""
    throttled = make_response(mocker, status_code=429)
    http_request.side_effect = [throttled] * 4 + [make_response(mocker, json_data={"ok": True})]
    client = MercadoLibreClient(settings, mock_auth_manager)

    result = await client._make_request("GET", "/items/MLU1")

    assert result == {"ok": True}
    assert http_request.await_count == 5
    assert [call.args[0] for call in mock_sleep.await_args_list] == [1.0, 2.0, 4.0, 8.0]


@pytest.mark.asyncio
async def test_rate_limit_exhausted(mocker, settings, mock_auth_manager, http_request, mock_sleep):
    """Test persistent 429 ends in RateLimitError after max_retries attempts"""
    http_request.return_value = make_response(mocker, status_code=429)
    client = MercadoLibreClient(settings, mock_auth_manager)

    with pytest.raises(RateLimitError) as exc_info:
        await client._make_request("GET", "/items/MLU1")

    assert exc_info.value.status_code == 429
    assert isinstance(exc_info.value, TransientFetchError)
    assert http_request.await_count == settings.MELI_MAX_RETRIES
    assert mock_sleep.await_count == settings.MELI_MAX_RETRIES - 1


@pytest.mark.asyncio
async def test_unauthorized_refreshes_token_once(mocker, settings, mock_auth_manager, http_request):
    """Test a 401 invalidates the token and the request is retried"""
    http_request.side_effect = [
        make_response(mocker, status_code=401),
        make_response(mocker, json_data={"id": "MLU1"}),
    ]
    client = MercadoLibreClient(settings, mock_auth_manager)

    result = await client._make_request("GET", "/items/MLU1")

    assert result == {"id": "MLU1"}
    mock_auth_manager.invalidate.assert_awaited_once()
    assert mock_auth_manager.get_access_token.await_count == 2


@pytest.mark.asyncio
async def test_repeated_unauthorized_raises_auth_error(mocker, settings, mock_auth_manager, http_request):
    http_request.return_value = make_response(mocker, status_code=401)
    client = MercadoLibreClient(settings, mock_auth_manager)

    with pytest.raises(AuthError):
        await client._make_request("GET", "/items/MLU1")

    assert http_request.await_count == 2


@pytest.mark.asyncio
async def test_forbidden_raises_auth_error(mocker, settings, mock_auth_manager, http_request):
    http_request.return_value = make_response(mocker, status_code=403)
    client = MercadoLibreClient(settings, mock_auth_manager)

    with pytest.raises(AuthError):
        await client._make_request("GET", "/users/123456/items/search")

    mock_auth_manager.invalidate.assert_not_awaited()


@pytest.mark.asyncio
async def test_server_error_is_transient(mocker, settings, mock_auth_manager, http_request):
    http_request.return_value = make_response(mocker, status_code=500, text="boom")
    client = MercadoLibreClient(settings, mock_auth_manager)

    with pytest.raises(TransientFetchError) as exc_info:
        await client._make_request("GET", "/items")

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_network_error_is_transient(settings, mock_auth_manager, http_request):
    http_request.side_effect = httpx.ConnectError("connection refused")
    client = MercadoLibreClient(settings, mock_auth_manager)

    with pytest.raises(TransientFetchError):
        await client._make_request("GET", "/items")


@pytest.mark.asyncio
async def test_invalid_json_is_transient(mocker, settings, mock_auth_manager, http_request):
    response = make_response(mocker)
    response.json.side_effect = ValueError("Expecting value")
    http_request.return_value = response
    client = MercadoLibreClient(settings, mock_auth_manager)

    with pytest.raises(TransientFetchError):
        await client._make_request("GET", "/items")
