try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
import base64
from contextlib import asynccontextmanager

import httpx
import pytest

from travel_pilot.clients.gemini import ResponseShapeError
from travel_pilot.core.config import get_settings
from travel_pilot.main import app, lifespan
from travel_pilot.schemas import MenuItem, MenuResult, MenuSection, ProductResult, UserFeedback
from travel_pilot.services import AnalysisOrchestrator, AnalysisStatus, ImageAcquisition, ScanSessionStore

IMAGE_B64 = base64.b64encode(b"\x89PNG\r\n\x1a\nimage").decode("ascii")
DATA_URI = f"data:image/png;base64,{IMAGE_B64}"


class ConfigurableAnalyzer:
    def __init__(self) -> None:
        self.outcomes: list = []
        self.payloads: list[str] = []
        self.gate: asyncio.Event | None = None

    async def analyze_image(self, image_base64: str):
        self.payloads.append(image_base64)
        if self.gate is not None:
            await self.gate.wait()
        if not self.outcomes:
            raise AssertionError("No analysis outcome configured")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


pytestmark = pytest.mark.anyio


@pytest.fixture()
def overrides():
    from travel_pilot import dependencies

    analyzer = ConfigurableAnalyzer()
    store = ScanSessionStore(lambda: AnalysisOrchestrator(analyzer), ttl_seconds=60)

    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_scan_session_store: lambda: store,
            dependencies.get_image_acquisition: lambda: ImageAcquisition(max_bytes=1024),
        }
    )

    yield analyzer, store

    app.dependency_overrides.clear()


@asynccontextmanager
async def _client():
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client


async def _new_session(client: httpx.AsyncClient) -> str:
    response = await client.post("/api/sessions")
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "idle"
    return body["session_id"]


async def test_health_endpoint(overrides):
    async with _client() as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["model"] == get_settings().gemini.model_name


async def test_scan_and_wait_returns_menu(overrides):
    analyzer, _ = overrides
    analyzer.outcomes.append(
        MenuResult(
            title="T",
            sections=[MenuSection(category="C", items=[MenuItem(name="N", price="$5")])],
        )
    )

    async with _client() as client:
        session_id = await _new_session(client)
        response = await client.post(
            f"/api/sessions/{session_id}/scan",
            params={"wait": "true"},
            json={"image": DATA_URI, "filename": "menu.png"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "result"
    assert body["error"] is None
    assert body["preview_uri"] == DATA_URI
    assert body["result"] == {
        "kind": "menu",
        "title": "T",
        "sections": [{"category": "C", "items": [{"name": "N", "price": "$5"}]}],
    }
    assert analyzer.payloads == [IMAGE_B64]


async def test_product_result_uses_camel_case_fields(overrides):
    analyzer, _ = overrides
    analyzer.outcomes.append(
        ProductResult(
            name="Tea",
            market_review="Loved by tourists",
            user_feedback=UserFeedback(pros=["cheap"], cons=["bland"]),
        )
    )

    async with _client() as client:
        session_id = await _new_session(client)
        response = await client.post(
            f"/api/sessions/{session_id}/scan?wait=true",
            json={"image": IMAGE_B64, "mime_type": "image/jpeg"},
        )

    result = response.json()["result"]
    assert result["kind"] == "product"
    assert result["marketReview"] == "Loved by tourists"
    assert result["userFeedback"] == {"pros": ["cheap"], "cons": ["bland"]}


async def test_background_scan_can_be_polled(overrides):
    analyzer, _ = overrides
    analyzer.gate = asyncio.Event()
    analyzer.outcomes.append(MenuResult(title="Lunch"))

    async with _client() as client:
        session_id = await _new_session(client)
        accepted = await client.post(
            f"/api/sessions/{session_id}/scan", json={"image": DATA_URI}
        )
        assert accepted.status_code == 202
        assert accepted.json()["status"] == "processing"

        conflict = await client.post(
            f"/api/sessions/{session_id}/scan", json={"image": DATA_URI}
        )
        assert conflict.status_code == 409

        analyzer.gate.set()
        for _ in range(50):
            polled = (await client.get(f"/api/sessions/{session_id}")).json()
            if polled["status"] != "processing":
                break
            await asyncio.sleep(0.01)

    assert polled["status"] == "result"
    assert polled["result"]["title"] == "Lunch"
    assert analyzer.payloads == [IMAGE_B64]


async def test_failed_scan_hides_error_kind(overrides):
    analyzer, _ = overrides
    analyzer.outcomes.append(ResponseShapeError("candidate text truncated"))

    async with _client() as client:
        session_id = await _new_session(client)
        response = await client.post(
            f"/api/sessions/{session_id}/scan?wait=true", json={"image": DATA_URI}
        )

    body = response.json()
    assert body["status"] == "error"
    assert body["result"] is None
    assert "ResponseShapeError" not in body["error"]
    assert "truncated" not in body["error"]


async def test_reset_returns_to_idle(overrides):
    analyzer, _ = overrides
    analyzer.outcomes.append(MenuResult(title="T"))

    async with _client() as client:
        session_id = await _new_session(client)
        await client.post(f"/api/sessions/{session_id}/scan?wait=true", json={"image": DATA_URI})
        response = await client.post(f"/api/sessions/{session_id}/reset")

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "idle"
    assert body["result"] is None
    assert body["generation"] == 2


async def test_empty_picker_is_a_no_op(overrides):
    analyzer, _ = overrides

    async with _client() as client:
        session_id = await _new_session(client)
        response = await client.post(f"/api/sessions/{session_id}/scan", json={})

    assert response.status_code == 200
    assert response.json()["status"] == "idle"
    assert analyzer.payloads == []


@pytest.mark.parametrize(
    "payload",
    [
        {"image": IMAGE_B64, "mime_type": "application/pdf"},
        {"image": IMAGE_B64},
        {"image": "%%%", "mime_type": "image/png"},
        {"image": "data:image/png;base64," + "A" * 4000},
    ],
)
async def test_rejected_images_return_400(overrides, payload):
    analyzer, _ = overrides

    async with _client() as client:
        session_id = await _new_session(client)
        response = await client.post(f"/api/sessions/{session_id}/scan", json=payload)

    assert response.status_code == 400
    assert analyzer.payloads == []


async def test_unknown_session_returns_404(overrides):
    async with _client() as client:
        responses = [
            await client.get("/api/sessions/missing"),
            await client.post("/api/sessions/missing/reset"),
            await client.post("/api/sessions/missing/scan", json={"image": DATA_URI}),
            await client.delete("/api/sessions/missing"),
        ]

    assert [response.status_code for response in responses] == [404, 404, 404, 404]


async def test_delete_closes_session(overrides):
    analyzer, store = overrides
    analyzer.gate = asyncio.Event()
    analyzer.outcomes.append(MenuResult(title="T"))

    async with _client() as client:
        session_id = await _new_session(client)
        accepted = await client.post(
            f"/api/sessions/{session_id}/scan", json={"image": DATA_URI}
        )
        assert accepted.status_code == 202
        session = store.get(session_id)

        deleted = await client.delete(f"/api/sessions/{session_id}")
        missing = await client.get(f"/api/sessions/{session_id}")

    assert deleted.status_code == 204
    assert deleted.content == b""
    assert missing.status_code == 404
    assert len(store) == 0
    assert session.orchestrator.state.status is AnalysisStatus.ERROR


async def test_shutdown_cancels_background_scans(overrides):
    analyzer, store = overrides
    analyzer.gate = asyncio.Event()

    async with lifespan(app):
        async with _client() as client:
            session_id = await _new_session(client)
            accepted = await client.post(
                f"/api/sessions/{session_id}/scan", json={"image": DATA_URI}
            )
            assert accepted.status_code == 202

    state = store.get(session_id).orchestrator.state
    assert state.status is AnalysisStatus.ERROR
    assert state.error_kind == "CancelledError"
