"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
import httpx
from sqlalchemy import create_engine, inspect, text
from typing import Any, Dict, List, Optional

from core.database import create_snapshot_engine
from schemas.source import SourceSchema
from snapshot.client import AirtableClient
from snapshot.throttle import RequestThrottle

TEST_API_KEY = "patTEST"
TEST_BASE_ID = "appTEST"
TEST_API_URL = "https://api.airtable.test/v0"


class FakeAirtable:
    """
    In-memory Airtable served through httpx.MockTransport.

    Records are split into pages; the offset cursor is the index of the
    next page. fail_page() makes one page answer with an HTTP error.
    """

    def __init__(self, tables: List[Dict[str, Any]], base_id: str = TEST_BASE_ID):
        self.base_id = base_id
        self.tables = tables
        self.bases = [{"id": base_id, "name": "Test Base", "permissionLevel": "create"}]
        self.pages: Dict[str, List[List[Dict[str, Any]]]] = {}
        self.failures: Dict[tuple, int] = {}
        self.requests: List[httpx.Request] = []

    def set_records(self, table_id: str, records: List[Dict[str, Any]], page_size: int = 100):
        self.pages[table_id] = [
            records[i:i + page_size] for i in range(0, len(records), page_size)
        ] or [[]]

    def fail_page(self, table_id: str, page_index: int, status: int = 500):
        self.failures[(table_id, page_index)] = status

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.headers.get("Authorization") != f"Bearer {TEST_API_KEY}":
            return httpx.Response(
                401,
                json={"error": {"type": "AUTHENTICATION_REQUIRED", "message": "Authentication required"}}
            )

        path = request.url.path.replace("/v0", "", 1)
        parts = [p for p in path.split("/") if p]

        if parts == ["meta", "bases"]:
            return httpx.Response(200, json={"bases": self.bases})

        if len(parts) == 4 and parts[:2] == ["meta", "bases"] and parts[3] == "tables":
            if parts[2] != self.base_id:
                return httpx.Response(404, json={"error": "NOT_FOUND"})
            return httpx.Response(200, json={"tables": self.tables})

        if len(parts) == 2 and parts[0] == self.base_id and parts[1] in self.pages:
            table_id = parts[1]
            index = int(request.url.params.get("offset") or 0)
            status = self.failures.get((table_id, index))
            if status:
                return httpx.Response(status, json={"error": {"type": "SERVER_ERROR", "message": "boom"}})

            body: Dict[str, Any] = {"records": self.pages[table_id][index]}
            if index + 1 < len(self.pages[table_id]):
                body["offset"] = str(index + 1)
            return httpx.Response(200, json=body)

        return httpx.Response(404, json={"error": "NOT_FOUND"})

    def client(self, api_key: str = TEST_API_KEY, **kwargs) -> AirtableClient:
        options = {
            "base_url": TEST_API_URL,
            "throttle": RequestThrottle(0),
            "max_retries": 1,
            "retry_delay": 0,
        }
        options.update(kwargs)
        return AirtableClient(
            api_key,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
            **options
        )

    def record_requests(self, table_id: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(f"/{table_id}")]


def field(field_id: str, name: str, type_: str, options: Optional[Dict[str, Any]] = None, **extra):
    data = {"id": field_id, "name": name, "type": type_, **extra}
    if options is not None:
        data["options"] = options
    return data


@pytest.fixture
def tasks_tables():
    """Tasks links to Projects; Projects has a currency field"""
    return [
        {
            "id": "tblTasks",
            "name": "Tasks",
            "primaryFieldId": "fldName",
            "fields": [
                field("fldName", "Name", "singleLineText"),
                field("fldDone", "Done", "checkbox", {"icon": "check", "color": "greenBright"}),
                field(
                    "fldLinks", "Linked Projects", "multipleRecordLinks",
                    {"linkedTableId": "tblProjects", "isReversed": False, "prefersSingleRecordLink": False}
                ),
            ],
        },
        {
            "id": "tblProjects",
            "name": "Projects",
            "primaryFieldId": "fldProjName",
            "fields": [
                field("fldProjName", "Name", "singleLineText"),
                field("fldBudget", "Budget", "currency", {"precision": 2, "symbol": "$"}),
            ],
        },
    ]


@pytest.fixture
def tasks_schema(tasks_tables) -> SourceSchema:
    return SourceSchema.model_validate({"base_id": TEST_BASE_ID, "name": "Test Base", "tables": tasks_tables})


@pytest.fixture
def task_records():
    return [
        {"id": "recTask1", "createdTime": "2024-01-15T10:00:00.000Z",
         "fields": {"Name": "Write docs", "Done": True, "Linked Projects": ["recProj1", "recProj2"]}},
        {"id": "recTask2", "createdTime": "2024-01-15T11:00:00.000Z",
         "fields": {"Name": "Review", "Linked Projects": ["recProj2"]}},
    ]


@pytest.fixture
def project_records():
    return [
        {"id": "recProj1", "fields": {"Name": "Alpha", "Budget": 1200.5}},
        {"id": "recProj2", "fields": {"Name": "Beta"}},
    ]


@pytest.fixture
def fake_airtable(tasks_tables, task_records, project_records) -> FakeAirtable:
    fake = FakeAirtable(tasks_tables)
    fake.set_records("tblTasks", task_records)
    fake.set_records("tblProjects", project_records)
    return fake


@pytest_asyncio.fixture(scope="function")
async def snapshot_engine(tmp_path):
    """Async engine on a fresh snapshot file"""
    engine = create_snapshot_engine(tmp_path / "snapshot.sqlite")
    yield engine
    await engine.dispose()


class SnapshotReader:
    """Synchronous read access to a finished snapshot file"""

    def __init__(self, path):
        self.engine = create_engine(f"sqlite:///{path}")

    def table_names(self) -> List[str]:
        return inspect(self.engine).get_table_names()

    def columns(self, table: str) -> List[str]:
        return [c["name"] for c in inspect(self.engine).get_columns(table)]

    def column_types(self, table: str) -> Dict[str, str]:
        return {c["name"]: str(c["type"]) for c in inspect(self.engine).get_columns(table)}

    def index_names(self, table: str) -> List[str]:
        return [i["name"] for i in inspect(self.engine).get_indexes(table)]

    def rows(self, table: str, order_by: str = "rowid") -> List[Dict[str, Any]]:
        with self.engine.connect() as conn:
            result = conn.execute(text(f'SELECT * FROM "{table}" ORDER BY {order_by}'))
            return [dict(row._mapping) for row in result]

    def close(self):
        self.engine.dispose()


@pytest.fixture
def open_snapshot():
    readers = []

    def _open(path) -> SnapshotReader:
        reader = SnapshotReader(path)
        readers.append(reader)
        return reader

    yield _open
    for reader in readers:
        reader.close()
