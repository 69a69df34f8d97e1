"""
Unit tests for the snapshot writer
"""

import json
import pytest
import pytest_asyncio
from conftest import TEST_BASE_ID, field
from schemas.source import SourceSchema
from snapshot.planner import SchemaPlanner
from snapshot.writer import SnapshotWriter


@pytest.fixture
def tasks_plan(tasks_schema):
    return SchemaPlanner().plan(tasks_schema)


@pytest_asyncio.fixture
async def writer(snapshot_engine, tasks_plan):
    writer = SnapshotWriter(snapshot_engine, tasks_plan, batch_size=2)
    await writer.create_metadata_tables()
    await writer.create_data_tables()
    return writer


def db_path(engine):
    return engine.url.database


class TestStructure:
    """Test table creation and metadata rows"""

    @pytest.mark.asyncio
    async def test_tables_columns_and_indexes(self, writer, snapshot_engine, open_snapshot):
        reader = open_snapshot(db_path(snapshot_engine))

        assert set(reader.table_names()) == {
            "_airtable_meta_tables", "_airtable_meta_fields",
            "Tasks", "Projects", "_link_Tasks_Linked_Projects",
        }
        assert reader.column_types("Tasks") == {"id": "TEXT", "Name": "TEXT", "Done": "INTEGER"}
        assert reader.column_types("Projects") == {"id": "TEXT", "Name": "TEXT", "Budget": "REAL"}
        assert reader.columns("_link_Tasks_Linked_Projects") == ["source_id", "target_id"]
        assert set(reader.index_names("_link_Tasks_Linked_Projects")) == {
            "idx__link_Tasks_Linked_Projects_source",
            "idx__link_Tasks_Linked_Projects_target",
        }

    @pytest.mark.asyncio
    async def test_metadata_rows(self, writer, snapshot_engine, open_snapshot):
        reader = open_snapshot(db_path(snapshot_engine))

        tables = reader.rows("_airtable_meta_tables")
        assert [(t["id"], t["name"], t["sqlite_name"], t["primary_field_id"]) for t in tables] == [
            ("tblTasks", "Tasks", "Tasks", "fldName"),
            ("tblProjects", "Projects", "Projects", "fldProjName"),
        ]

        fields = [f for f in reader.rows("_airtable_meta_fields") if f["table_id"] == "tblTasks"]
        assert [f["id"] for f in fields] == ["synthetic_pk_id_for_tblTasks", "fldName", "fldDone", "fldLinks"]

        key = fields[0]
        assert key["name"] == "Record ID"
        assert key["sqlite_name"] == "id"
        assert key["type"] == "id"
        assert key["is_primary_key"] == 1
        assert key["airtable_description"] == "Airtable Record ID (Primary Key)"
        assert key["options_json"] is None

        link = fields[3]
        assert link["sqlite_name"] == "Linked_Projects"
        assert link["junction_table_name"] == "_link_Tasks_Linked_Projects"
        assert json.loads(link["options_json"])["linkedTableId"] == "tblProjects"
        assert link["is_primary_key"] == 0

        assert fields[1]["options_json"] is None
        assert fields[1]["junction_table_name"] is None

    @pytest.mark.asyncio
    async def test_options_json_is_compact(self, writer, snapshot_engine, open_snapshot):
        reader = open_snapshot(db_path(snapshot_engine))

        budget = [f for f in reader.rows("_airtable_meta_fields") if f["id"] == "fldBudget"][0]

        assert budget["options_json"] == '{"precision":2,"symbol":"$"}'

    @pytest.mark.asyncio
    async def test_empty_options_are_stored_as_empty_object(self, snapshot_engine, open_snapshot):
        schema = SourceSchema.model_validate({
            "base_id": TEST_BASE_ID,
            "tables": [{
                "id": "tblNotes",
                "name": "Notes",
                "fields": [
                    field("fldBody", "Body", "multilineText", {}),
                    field("fldTitle", "Title", "singleLineText"),
                ],
            }],
        })
        writer = SnapshotWriter(snapshot_engine, SchemaPlanner().plan(schema))
        await writer.create_metadata_tables()

        reader = open_snapshot(db_path(snapshot_engine))
        options = {f["id"]: f["options_json"] for f in reader.rows("_airtable_meta_fields")}

        assert options["fldBody"] == "{}"
        assert options["fldTitle"] is None


class TestWriteTableData:
    """Test row and link insertion"""

    @pytest.mark.asyncio
    async def test_rows_and_links(self, writer, tasks_plan, task_records, snapshot_engine, open_snapshot):
        result = await writer.write_table_data(tasks_plan.table("tblTasks"), task_records)

        assert result.rows_written == 2
        assert result.rows_failed == 0
        assert result.links_written == 3
        assert result.links_failed == 0

        reader = open_snapshot(db_path(snapshot_engine))
        assert reader.rows("Tasks") == [
            {"id": "recTask1", "Name": "Write docs", "Done": 1},
            {"id": "recTask2", "Name": "Review", "Done": None},
        ]
        assert reader.rows("_link_Tasks_Linked_Projects", order_by="source_id, target_id") == [
            {"source_id": "recTask1", "target_id": "recProj1"},
            {"source_id": "recTask1", "target_id": "recProj2"},
            {"source_id": "recTask2", "target_id": "recProj2"},
        ]

    @pytest.mark.asyncio
    async def test_bad_value_skips_only_that_row(self, writer, tasks_plan, snapshot_engine, open_snapshot):
        records = [
            {"id": "recP1", "fields": {"Name": "Alpha", "Budget": 10.25}},
            {"id": "recP2", "fields": {"Name": "Broken", "Budget": "lots"}},
            {"id": "recP3", "fields": {"Name": "Gamma", "Budget": "7.5"}},
        ]

        result = await writer.write_table_data(tasks_plan.table("tblProjects"), records)

        assert result.rows_written == 2
        assert result.rows_failed == 1
        assert result.failed_record_ids == ["recP2"]

        reader = open_snapshot(db_path(snapshot_engine))
        assert reader.rows("Projects") == [
            {"id": "recP1", "Name": "Alpha", "Budget": 10.25},
            {"id": "recP3", "Name": "Gamma", "Budget": 7.5},
        ]

    @pytest.mark.asyncio
    async def test_failed_row_gets_no_links(self, writer, tasks_plan, snapshot_engine, open_snapshot):
        records = [
            {"id": "recTask1", "fields": {"Name": "First", "Linked Projects": ["recProj1"]}},
            {"id": "recTask1", "fields": {"Name": "Duplicate", "Linked Projects": ["recProj9"]}},
            {"fields": {"Name": "No id", "Linked Projects": ["recProj8"]}},
        ]

        result = await writer.write_table_data(tasks_plan.table("tblTasks"), records)

        assert result.rows_written == 1
        assert result.rows_failed == 2
        assert result.failed_record_ids == ["recTask1", None]

        reader = open_snapshot(db_path(snapshot_engine))
        assert [r["Name"] for r in reader.rows("Tasks")] == ["First"]
        assert reader.rows("_link_Tasks_Linked_Projects") == [
            {"source_id": "recTask1", "target_id": "recProj1"},
        ]

    @pytest.mark.asyncio
    async def test_link_values_are_normalized(self, writer, tasks_plan, snapshot_engine, open_snapshot):
        records = [
            {"id": "recA", "fields": {"Linked Projects": ["recP1", "recP1", {"id": "recP2"}, "", None]}},
            {"id": "recB", "fields": {"Linked Projects": "recP1"}},
            {"id": "recC", "fields": {"Linked Projects": []}},
        ]

        result = await writer.write_table_data(tasks_plan.table("tblTasks"), records)

        assert result.rows_written == 3
        assert result.links_written == 2
        assert result.links_failed == 0

        reader = open_snapshot(db_path(snapshot_engine))
        assert reader.rows("_link_Tasks_Linked_Projects", order_by="target_id") == [
            {"source_id": "recA", "target_id": "recP1"},
            {"source_id": "recA", "target_id": "recP2"},
        ]

    @pytest.mark.asyncio
    async def test_batches_cover_every_record(self, writer, tasks_plan, snapshot_engine, open_snapshot):
        records = [{"id": f"rec{i}", "fields": {"Name": f"Task {i}", "Done": i % 2 == 0}} for i in range(5)]

        result = await writer.write_table_data(tasks_plan.table("tblTasks"), records)

        assert result.rows_written == 5
        reader = open_snapshot(db_path(snapshot_engine))
        assert [r["Done"] for r in reader.rows("Tasks")] == [1, 0, 1, 0, 1]

    @pytest.mark.asyncio
    async def test_no_records(self, writer, tasks_plan):
        result = await writer.write_table_data(tasks_plan.table("tblTasks"), [])

        assert result.rows_written == 0
        assert result.rows_failed == 0


@pytest.mark.asyncio
async def test_awkward_names_round_trip(snapshot_engine, open_snapshot):
    schema = SourceSchema.model_validate({
        "base_id": TEST_BASE_ID,
        "tables": [{
            "id": "tblOdd",
            "name": "Odd Table (v2)",
            "primaryFieldId": "fld1",
            "fields": [
                field("fld1", "ID", "singleLineText"),
                field("fld2", "Tags", "multipleSelects", {"choices": [{"name": "a"}, {"name": "b"}]}),
                field("fld3", "Owner", "singleCollaborator"),
                field("fld4", "Shape", "hologram"),
            ],
        }],
    })
    plan = SchemaPlanner().plan(schema)
    writer = SnapshotWriter(snapshot_engine, plan)
    await writer.create_metadata_tables()
    await writer.create_data_tables()

    await writer.write_table_data(plan.tables[0], [{
        "id": "rec1",
        "fields": {"ID": "A-1", "Tags": ["a", "b"], "Owner": {"id": "usr1", "email": "o@x.io"}, "Shape": {"k": 1}},
    }])

    reader = open_snapshot(db_path(snapshot_engine))
    assert reader.rows("Odd_Table_v2") == [
        {"id": "rec1", "id_1": "A-1", "Tags": '["a","b"]', "Owner": "o@x.io", "Shape": '{"k":1}'},
    ]
