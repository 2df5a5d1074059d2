"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import asyncio
import pytest
from unittest.mock import patch
from typing import Generator

from models.serial_validation import ValidationVerdict

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable, filtering methods."""

    def __init__(self, data: list = None, error: Exception = None, log: list = None):
        self._data = data or []
        self._error = error
        self._log = log if log is not None else []
        self._limit = None

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._log.append(("eq", column, value))
        self._data = [row for row in self._data if row.get(column) == value]
        return self

    def neq(self, column, value):
        self._log.append(("neq", column, value))
        self._data = [row for row in self._data if row.get(column) != value]
        return self

    def in_(self, column, values):
        self._log.append(("in_", column, list(values)))
        self._data = [row for row in self._data if row.get(column) in values]
        return self

    def limit(self, count):
        self._limit = count
        return self

    def execute(self) -> MockSupabaseResponse:
        if self._error is not None:
            raise self._error
        data = self._data if self._limit is None else self._data[:self._limit]
        return MockSupabaseResponse(data=data)


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, error: Exception = None, log: list = None):
        self._data = data or []
        self._error = error
        self._log = log

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._data.copy(), self._error, self._log)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}
        self.query_log = []

    def set_table_data(self, table_name: str, data: list):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "error": None}

    def set_table_error(self, table_name: str, error: Exception):
        """Make every query on a table raise."""
        self._tables[table_name] = {"data": [], "error": error}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "error": None})
        return MockSupabaseTable(config["data"], config["error"], self.query_log)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("serial_number_usage", [
                {"serial_number": "SN1", "project_id": 1, ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("serial_number_usage", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.serial_validation_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.serial_validation_service._serial_validation_service", None):
                yield mock_supabase


@pytest.fixture
def usage_rows() -> list:
    """Serials already consumed by delivery challans."""
    return [
        {
            "serial_number": "SN-100",
            "project_id": 1,
            "product_id": 10,
            "dc_id": 501,
            "dc_number": "DC-2025-001",
            "dc_status": "issued",
            "product_name": "Solar Panel 540W",
        },
        {
            "serial_number": "SN-200",
            "project_id": 1,
            "product_id": 20,
            "dc_id": 502,
            "dc_number": "DC-2025-002",
            "dc_status": "draft",
            "product_name": "Inverter 5kW",
        },
        {
            "serial_number": "SN-300",
            "project_id": 2,
            "product_id": 10,
            "dc_id": 601,
            "dc_number": "DC-2025-101",
            "dc_status": "issued",
            "product_name": "Solar Panel 540W",
        },
    ]


# ===================
# SERIAL WORKFLOW DOUBLES
# ===================

class RecordingPresenter:
    """Presentation sinks that remember what they were given."""

    def __init__(self):
        self.toasts = []
        self.counters = {}
        self.renders = []

    def show_toast(self, message: str, severity: str) -> None:
        self.toasts.append((message, severity))

    def update(self, element_key: str, text: str, style_class: str) -> None:
        self.counters[element_key] = (text, style_class)

    def render(self, product_id, tokens, destinations, quota) -> None:
        self.renders.append((product_id, list(tokens), [d.id for d in destinations], quota))


class ControlledValidationClient:
    """
    Stand-in for SerialValidationClient.

    Responses are keyed by call number (1-based); a call can be held on an
    asyncio.Event to control arrival order.
    """

    def __init__(self):
        self.calls = []
        self.responses = {}
        self._holds = {}

    def hold(self, call_number: int, event: asyncio.Event) -> None:
        self._holds[call_number] = event

    async def validate(self, product_id, serials, project_id, exclude_dc_id=None):
        self.calls.append({
            "product_id": product_id,
            "serials": list(serials),
            "project_id": project_id,
            "exclude_dc_id": exclude_dc_id,
        })
        call_number = len(self.calls)

        event = self._holds.get(call_number)
        if event is not None:
            await event.wait()

        result = self.responses.get(call_number, ValidationVerdict())
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def validation_client() -> ControlledValidationClient:
    return ControlledValidationClient()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)


@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("serial_number_usage", [...])
            response = test_client_with_mock_db.post("/api/serial-numbers/validate", json={...})
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
