# Feedonomics FDX Client
# File: tests/conftest.py
# Version: v1

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from fdx_client.config import FdxConfig
from fdx_client.models import ServiceResponse
from fdx_client.preprocessor import build_preprocessor_url

Handler = Union[ServiceResponse, Callable[..., Any]]


class FakeClient:
    """Stands in for FdxClient: records calls, answers from ``responses``.

    A response may be a ``ServiceResponse`` or a callable taking the call's
    arguments. Calls without a configured response succeed with no data.
    """

    def __init__(self, responses: Optional[Dict[str, Handler]] = None) -> None:
        self.config = FdxConfig(api_token="test-token")
        self.responses: Dict[str, Handler] = dict(responses or {})
        self.calls: List[Tuple[str, tuple, dict]] = []
        self.db_id: Optional[str] = None

    def set_db_id(self, db_id: Any) -> None:
        self.calls.append(("set_db_id", (db_id,), {}))
        self.db_id = str(db_id)

    def generate_bigcommerce_preprocessor_url(self, params: Dict[str, Any]) -> str:
        return build_preprocessor_url(
            params.get("connection_info") or {},
            params.get("file_info"),
            base_url=self.config.import_url,
        )

    def names(self) -> List[str]:
        return [name for name, _, _ in self.calls]

    def args_of(self, name: str) -> tuple:
        for call_name, args, _ in self.calls:
            if call_name == name:
                return args
        raise AssertionError(f"{name} was not called")

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)

        async def _call(*args: Any, **kwargs: Any) -> ServiceResponse:
            self.calls.append((name, args, kwargs))
            handler = self.responses.get(name, ServiceResponse.ok())
            if callable(handler):
                return handler(*args, **kwargs)
            return handler

        return _call


@pytest.fixture
def fake_client() -> Callable[..., FakeClient]:
    return FakeClient
