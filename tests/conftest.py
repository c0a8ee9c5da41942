import sys
from pathlib import Path
from typing import Callable, Dict, Iterator

import httpx
import pytest
import structlog


# Ensure the repository root is importable as a package root (so `import app` works).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.api_keys.service import KeyValidationService  # noqa: E402
from app.api_keys.validator import GeminiKeyValidator  # noqa: E402
from app.db.session import DatabaseSessionManager  # noqa: E402

MODELS_URL = "https://gemini.test/v1beta/models"
FORBIDDEN_MESSAGE = "API key not valid. Please pass a valid API key."


def make_key(n: int, prefix: str = "AIzaSy") -> str:
    """Well-formed key: prefix plus 33 key characters."""
    return prefix + "Ab_-" + "x" * 26 + f"{n:03d}"


class FakeGemini:
    """Scripted models endpoint keyed by the X-Goog-Api-Key header.

    Unknown keys get a 200 with a model list.
    """

    def __init__(self) -> None:
        self.responses: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def valid(self, key: str) -> None:
        self.responses[key] = lambda request: httpx.Response(
            200, json={"models": [{"name": "models/gemini-2.5-flash"}]}
        )

    def forbidden(self, key: str) -> None:
        self.responses[key] = lambda request: httpx.Response(
            403,
            json={"error": {"code": 403, "message": FORBIDDEN_MESSAGE, "status": "PERMISSION_DENIED"}},
        )

    def respond(self, key: str, response: httpx.Response) -> None:
        self.responses[key] = lambda request: response

    def unreachable(self, key: str) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.responses[key] = _raise

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = request.headers.get("X-Goog-Api-Key", "")
        responder = self.responses.get(key)
        if responder is None:
            return httpx.Response(200, json={"models": [{"name": "models/gemini-2.5-pro"}]})
        return responder(request)


@pytest.fixture(autouse=True)
def _restore_structlog_config() -> Iterator[None]:
    """Undo configure_logging calls made while a test captured stderr."""
    saved = structlog.get_config()
    yield
    structlog.configure(**saved)


@pytest.fixture
def fake_gemini() -> FakeGemini:
    return FakeGemini()


@pytest.fixture
def validator(fake_gemini: FakeGemini) -> GeminiKeyValidator:
    return GeminiKeyValidator(
        models_url=MODELS_URL,
        api_client="test-suite/1.0",
        transport=httpx.MockTransport(fake_gemini.handler),
    )


@pytest.fixture
def db_manager() -> Iterator[DatabaseSessionManager]:
    manager = DatabaseSessionManager(database_url="sqlite://")
    yield manager
    manager.close()


@pytest.fixture
def service(db_manager: DatabaseSessionManager, validator: GeminiKeyValidator) -> KeyValidationService:
    return KeyValidationService(db_manager=db_manager, validator=validator)


@pytest.fixture
def api_app(service: KeyValidationService):
    from app.api_keys.service import get_key_validation_service
    from app.main import app

    app.dependency_overrides[get_key_validation_service] = lambda: service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture(name="make_key")
def make_key_fixture() -> Callable[..., str]:
    return make_key
