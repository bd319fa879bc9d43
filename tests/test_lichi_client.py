"""LichiClient request shapes and error mapping."""

import json

import httpx
import pytest

from lichi_server.errors import DecodeError, HttpError, MalformedCategory, MalformedProduct, TransportError
from lichi_server.catalog import CatalogController
from lichi_server.lichi_client import LichiClient
from lichi_server.models import Category
from tests.conftest import product_payload


def _client(handler) -> LichiClient:
    return LichiClient(transport=httpx.MockTransport(handler))


def _recording(response_body, status_code=200):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if isinstance(response_body, str):
            return httpx.Response(status_code, text=response_body)
        return httpx.Response(status_code, json=response_body)

    return requests, handler


@pytest.mark.asyncio
async def test_get_categories_posts_fixed_body_and_keeps_category_entries():
    requests, handler = _recording(
        {
            "api_data": {
                "aMenu": [
                    {"type": "category", "id": "1", "url": "dresses", "name": "Dresses"},
                    {"type": "banner", "id": "9", "url": "sale", "name": "Sale"},
                    {"type": "category", "id": "2", "url": "shoes", "name": "Shoes"},
                ]
            }
        }
    )
    client = _client(handler)

    categories = await client.get_categories()

    assert categories == [
        Category(id="1", url="dresses", name="Dresses"),
        Category(id="2", url="shoes", name="Shoes"),
    ]
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/category/get_category_detail"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {"shop": 2, "lang": 1, "category": "clothes"}
    await client.close()


@pytest.mark.asyncio
async def test_get_products_sends_category_filter():
    requests, handler = _recording({"api_data": {"aProduct": [product_payload(1), product_payload(2)]}})
    client = _client(handler)

    products = await client.get_products(page=3, category="dresses")

    assert [product.id for product in products] == [1, 2]
    assert requests[0].url.path == "/category/get_category_product_list"
    assert json.loads(requests[0].content) == {
        "shop": 2,
        "lang": 1,
        "limit": 12,
        "page": 3,
        "category": "dresses",
    }
    await client.close()


@pytest.mark.asyncio
async def test_get_products_omits_empty_category():
    requests, handler = _recording({"api_data": {"aProduct": []}})
    client = _client(handler)

    assert await client.get_products(page=1, category="") == []
    assert "category" not in json.loads(requests[0].content)
    await client.close()


@pytest.mark.asyncio
async def test_missing_list_is_empty():
    _, handler = _recording({"api_data": {"aProduct": None}})
    client = _client(handler)
    assert await client.get_products(page=1) == []
    await client.close()


@pytest.mark.asyncio
async def test_non_200_raises_http_error():
    _, handler = _recording({"error": "down"}, status_code=503)
    client = _client(handler)

    with pytest.raises(HttpError) as excinfo:
        await client.get_categories()
    assert excinfo.value.status_code == 503
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    ["<html>maintenance</html>", {"result": True}, {"api_data": []}, {"api_data": {"aMenu": {"a": 1}}}],
)
async def test_unexpected_body_raises_decode_error(body):
    _, handler = _recording(body)
    client = _client(handler)

    with pytest.raises(DecodeError):
        await client.get_categories()
    await client.close()


@pytest.mark.asyncio
async def test_deeply_nested_body_raises_decode_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"[" * 100000 + b"]" * 100000)

    client = _client(handler)
    with pytest.raises(DecodeError):
        await client.get_products(page=1)
    await client.close()


@pytest.mark.asyncio
async def test_transport_failure_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(TransportError):
        await client.get_products(page=1)
    await client.close()


@pytest.mark.asyncio
async def test_malformed_entities_fail_the_response():
    _, handler = _recording({"api_data": {"aMenu": [{"type": "category", "id": "1", "name": "No url"}]}})
    client = _client(handler)
    with pytest.raises(MalformedCategory):
        await client.get_categories()
    await client.close()

    _, handler = _recording({"api_data": {"aProduct": [product_payload(1), {"name": "No id"}]}})
    client = _client(handler)
    with pytest.raises(MalformedProduct):
        await client.get_products(page=1)
    await client.close()


@pytest.mark.asyncio
async def test_controller_reports_undecodable_page_instead_of_raising():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"[" * 100000 + b"]" * 100000)

    client = _client(handler)
    errors = []
    controller = CatalogController(client, on_error=errors.append)

    assert await controller.fetch_products() is False

    assert len(errors) == 1
    assert isinstance(errors[0], DecodeError)
    assert controller.state.is_loading is False
    assert controller.state.current_page == 1
    await client.close()
